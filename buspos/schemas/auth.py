from pydantic import BaseModel

class RegisterRequest(BaseModel):
    name: str
    email: str  # plain str to allow .local and other dev domains
    password: str
    role: str = "USER"

class LoginRequest(BaseModel):
    email: str
    password: str
