from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from app.db.session import get_db
from app.core.errors import AuthenticationError
from app.services.identity_provider import Account, IdentityProvider, LocalIdentityProvider
from app.store.base import DataStore
from app.store.sql_store import SqlAlchemyDataStore

bearer = HTTPBearer(auto_error=False)

def get_store(db: Session = Depends(get_db)) -> DataStore:
    return SqlAlchemyDataStore(db)

def get_identity_provider(db: Session = Depends(get_db)) -> IdentityProvider:
    return LocalIdentityProvider(db)

def get_current_account(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> Account:
    if not creds:
        raise HTTPException(status_code=401, detail="No access token provided")
    try:
        return provider.get_account(creds.credentials)
    except AuthenticationError as e:
        raise HTTPException(status_code=401, detail=str(e))
