"""
api/routes/signup.py
--------------------
Organization onboarding.

POST /signup : Public endpoint: create an organization, its first
                department, the owner account and a starter license.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from worktrack.dependencies import get_auth_client, get_store
from worktrack.schemas.signup import SignupForm, SignupResult
from worktrack.services.auth_service import AuthClient
from worktrack.services.signup_service import SignupService
from worktrack.services.store import RecordStore

router = APIRouter(tags=["Signup"])


@router.post(
    "/signup",
    response_model=SignupResult,
    status_code=status.HTTP_201_CREATED,
    summary="Create an organization and its owner",
)
async def signup(
    body: SignupForm,
    store: Annotated[RecordStore, Depends(get_store)],
    auth: Annotated[AuthClient, Depends(get_auth_client)],
) -> SignupResult:
    """
    No authentication required. The owner signs in afterwards with
    POST /login. A failed step answers with error SIGNUP_STEP_FAILED and
    names the step and table in details.
    """
    return await SignupService(store, auth).create_organization(body.to_request())
