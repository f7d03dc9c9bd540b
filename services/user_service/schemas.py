from typing import Optional

from pydantic import BaseModel, EmailStr

from shared.security import Role


class UserCreate(BaseModel):
    id: Optional[str] = None # identity id from the auth layer; generated when omitted
    email: EmailStr
    name: str
    phone_number: Optional[str] = None
    street_address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    role: Role = Role.INDIVIDUAL
    company_id: Optional[int] = None


class UserResponse(BaseModel):
    id: str
    email: str
    name: str
    role: Role
    company_id: Optional[int]

    class Config:
        from_attributes = True
