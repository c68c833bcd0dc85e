from pydantic import BaseModel
from typing import Optional

class LoginRequest(BaseModel):
    email: str
    password: str

class RegisterRequest(BaseModel):
    email: str  # plain str to allow placeholder domains
    password: str
    firstName: str
    lastName: str
    role: str = "passenger"  # passenger, agent, driver

class UserOut(BaseModel):
    id: str
    email: str
    role: str = "passenger"
    first_name: str = ""
    last_name: str = ""
    phone_number: Optional[str] = None
    date_of_birth: Optional[str] = None
    national_id: Optional[str] = None

class SessionOut(BaseModel):
    access_token: str
    refresh_token: str
    expires_at: int

class LoginOut(BaseModel):
    success: bool = True
    user: UserOut
    session: SessionOut

class UserEnvelope(BaseModel):
    success: bool = True
    user: UserOut
    message: Optional[str] = None
