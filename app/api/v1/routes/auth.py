import logging
from fastapi import APIRouter, Depends, HTTPException
from app.api.deps import get_current_account, get_identity_provider, get_store
from app.core.errors import AuthenticationError, ConflictError, StoreError
from app.schemas.auth import LoginRequest, LoginOut, RegisterRequest, SessionOut, UserEnvelope, UserOut
from app.services.identity_provider import Account, IdentityProvider
from app.store.base import DataStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

ALLOWED_ROLES = ("passenger", "agent", "driver")

def _user_out(account: Account, store: DataStore) -> UserOut:
    """Merge the account with its profile; a missing profile only limits the info returned."""
    try:
        profile = store.get_profile(account.id)
    except StoreError:
        logger.warning("profile fetch failed for %s", account.id, exc_info=True)
        profile = None
    if not profile:
        return UserOut(id=account.id, email=account.email, role=account.role)
    return UserOut(
        id=account.id,
        email=account.email,
        role=profile.role or account.role,
        first_name=profile.first_name,
        last_name=profile.last_name,
        phone_number=profile.phone_number,
        date_of_birth=profile.date_of_birth,
        national_id=profile.national_id,
    )

@router.post("/auth/login", response_model=LoginOut)
def login(body: LoginRequest,
          provider: IdentityProvider = Depends(get_identity_provider),
          store: DataStore = Depends(get_store)):
    if not body.email.strip() or not body.password:
        raise HTTPException(status_code=400, detail="Email and password are required")
    try:
        account, tokens = provider.sign_in(body.email, body.password)
    except AuthenticationError:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return LoginOut(
        user=_user_out(account, store),
        session=SessionOut(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            expires_at=tokens.expires_at,
        ),
    )

@router.post("/auth/register", response_model=UserEnvelope, status_code=201)
def register(body: RegisterRequest, provider: IdentityProvider = Depends(get_identity_provider)):
    first, last = body.firstName.strip(), body.lastName.strip()
    if not body.email.strip() or not body.password or not first or not last:
        raise HTTPException(status_code=400, detail="Email, password, first name, and last name are required")
    if body.role not in ALLOWED_ROLES:
        raise HTTPException(status_code=400, detail="Invalid role. Must be passenger, agent, or driver")
    try:
        account = provider.create_account(
            body.email, body.password,
            {"first_name": first, "last_name": last, "role": body.role},
        )
    except ConflictError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreError:
        logger.exception("registration failed for %s", body.email)
        raise HTTPException(status_code=500, detail="Internal server error during registration")
    return UserEnvelope(
        user=UserOut(id=account.id, email=account.email, role=account.role, first_name=first, last_name=last),
        message="User registered successfully.",
    )

@router.post("/auth/logout")
def logout():
    # Tokens are stateless JWTs; the client drops them.
    return {"success": True, "message": "Logged out successfully"}

@router.get("/auth/me", response_model=UserEnvelope)
def me(account: Account = Depends(get_current_account), store: DataStore = Depends(get_store)):
    return UserEnvelope(user=_user_out(account, store))
