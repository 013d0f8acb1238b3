from pydantic import BaseModel
from typing import Optional
from schemas.record_schema import CamelModel

class SessionData(CamelModel):
    logged_in: bool
    timestamp: int          # creation time, epoch milliseconds
    ip: str = "unknown"
    user_agent: str = "unknown"
    last_activity: Optional[int] = None

class LoginResponse(CamelModel):
    success: bool = True
    message: str = "Login successful"
    session_id: str

class SessionSummary(BaseModel):
    timestamp: int
    ip: str

class SessionStatusResponse(CamelModel):
    logged_in: bool
    session: Optional[SessionSummary] = None

class LogoutResponse(BaseModel):
    success: bool = True
    message: str = "Logged out successfully"

class LoginRequest(BaseModel):
    password: Optional[str] = None
