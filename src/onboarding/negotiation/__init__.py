"""Name, logo and bio negotiation."""

from onboarding.negotiation.bio import BioComposer
from onboarding.negotiation.candidates import Candidate, CandidateSet, Disposition
from onboarding.negotiation.logos import LogoNegotiator
from onboarding.negotiation.names import NameNegotiator

__all__ = [
    "BioComposer",
    "Candidate",
    "CandidateSet",
    "Disposition",
    "LogoNegotiator",
    "NameNegotiator",
]
