from pydantic import BaseModel
from typing import Optional, Union

class GetOrCreateUserRequest(BaseModel):
    name: Optional[str] = None
    phone: Optional[Union[int, str]] = None  # the mobile app may send digits as a JSON number

class GetOrCreateUserOut(BaseModel):
    success: bool = True
    userId: str
