from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from roombooker.db import get_db, transaction
from roombooker.dependencies import get_history_recorder
from roombooker.domain.models import Actor
from roombooker.schemas.auth import CurrentUser, Token
from roombooker.services.history import HistoryRecorder
from roombooker.utils.auth import authenticate_user, create_access_token, get_current_user
from roombooker.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
)


@router.post("/login", response_model=Token)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db),
    history: HistoryRecorder = Depends(get_history_recorder),
):
    """
    Exchange an email (sent as ``username``) and password for a bearer token.
    """
    user = authenticate_user(db, form_data.username, form_data.password)
    if user is None:
        logger.warning("Failed login for %s", form_data.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    with transaction(db, "login history"):
        history.record_login(user.to_actor())
    return Token(access_token=create_access_token({"sub": user.email}))


@router.get("/me", response_model=CurrentUser)
def read_current_user(current_user: Actor = Depends(get_current_user)):
    return CurrentUser(id=current_user.id, name=current_user.name, role=current_user.role)
