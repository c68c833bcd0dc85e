import logging
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from app.api.deps import get_identity_provider, get_store
from app.core.errors import ConflictError, StoreError, ValidationError
from app.schemas.users import GetOrCreateUserOut, GetOrCreateUserRequest
from app.services.identity_provider import IdentityProvider
from app.services.user_service import get_or_create_user
from app.store.base import DataStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["users"])

@router.post("/users/get-or-create", response_model=GetOrCreateUserOut)
def get_or_create(
    body: GetOrCreateUserRequest,
    store: DataStore = Depends(get_store),
    provider: IdentityProvider = Depends(get_identity_provider),
):
    try:
        user_id, created = get_or_create_user(store, provider, body.name, body.phone)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StoreError:
        logger.exception("get-or-create failed for phone %s", body.phone)
        raise HTTPException(status_code=500, detail="Internal server error")
    out = GetOrCreateUserOut(userId=user_id)
    return JSONResponse(status_code=201 if created else 200, content=out.model_dump())
