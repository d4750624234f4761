"""
SideHive Functions - server-side functions for the onboarding wizard.

FastAPI app over Supabase: idempotent AI generation (product ideas,
identity/names, logos, bio), session storage, email binding and claim.
"""
