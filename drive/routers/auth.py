from fastapi import APIRouter, Depends
from pydantic import BaseModel

from drive.dependencies import Drive, get_drive
from drive.services import authenticate

router = APIRouter(prefix="/api/auth", tags=["auth"])


class LoginRequest(BaseModel):
    username: str
    password: str


@router.post("/login")
def login(body: LoginRequest, drive: Drive = Depends(get_drive)):
    # AuthenticationFailed is turned into a 401 by the app's error handlers
    user = authenticate(drive.catalog, body.username, body.password)
    return {
        "success": True,
        "user": {"username": user.username, "name": user.display_name},
    }
