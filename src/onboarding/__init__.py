"""
SideHive Onboarding.

Client side of the onboarding wizard: the flow controller and its form
state, name/logo/bio negotiation, and session recovery and claim.

Steps:
1. Idea - what the business is
2. Products - preview products to sell
3. About you - founder details
4. Vibe & audience - tone and audience tags
5. Identity - name negotiation
6. Logo - logo negotiation and bio
"""

from .state import OnboardingFormState, OnboardingStep
from .client import FunctionsClient, HttpFunctionTransport, build_client
from .flow import FlowController

__all__ = [
    "FlowController",
    "FunctionsClient",
    "HttpFunctionTransport",
    "OnboardingFormState",
    "OnboardingStep",
    "build_client",
]
