import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

import database
import lifecycle
import reports
from auth import TOKEN_COOKIE, TOKEN_MAX_AGE, hash_password, issue_token, read_token, verify_password
from config import Settings, get_settings
from database import create_document, delete_document, get_document_by_id, get_documents, update_document
from errors import AppError, AuthenticationError, ValidationError
from logging_config import configure_logging
from schemas import (
    AssignRequest,
    Delivery,
    DeliveryRecord,
    DeliveryReport,
    DeliveryUpdate,
    Hamper,
    HamperRecord,
    HamperReport,
    HamperUpdate,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    NotificationSettings,
    NotificationSettingsResponse,
    NotificationSettingsUpdate,
    PasswordChangeRequest,
    ProfileUpdate,
    Recipient,
    RecipientRecord,
    RecipientReport,
    RecipientUpdate,
    RegisterRequest,
    StatusUpdateRequest,
    User,
    UserProfile,
)
from seed import seed_demo_data

logger = logging.getLogger(__name__)

INTERNAL_ERROR = "Internal server error"

router = APIRouter()


# ===================== Error envelope =====================
def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    logger.warning("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.message)
    return _error(exc.status_code, exc.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{location}: {err.get('msg')}" if location else err.get("msg", "invalid"))
    message = "Invalid request: " + "; ".join(problems)
    logger.info("%s %s -> 400 %s", request.method, request.url.path, message)
    return _error(400, message)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, INTERNAL_ERROR)


# ===================== Dependencies =====================
def app_settings(request: Request) -> Settings:
    return request.app.state.settings


def token_claims(request: Request) -> Optional[dict]:
    header = request.headers.get("authorization", "")
    token = header[7:] if header.lower().startswith("bearer ") else request.cookies.get(TOKEN_COOKIE)
    return read_token(token)


def actor_id(claims: Optional[dict] = Depends(token_claims)) -> str:
    """Id of the calling user for createdBy stamps, or "system" for anonymous calls."""
    return claims["id"] if claims else "system"


def current_user(claims: Optional[dict] = Depends(token_claims)) -> dict:
    if not claims:
        raise AuthenticationError("Not authenticated")
    return get_document_by_id("user", claims["id"])


# ===================== Public Endpoints =====================
@router.get("/")
def root():
    return {"message": "Hamper Delivery API running"}


@router.get("/test")
def test_database(settings: Settings = Depends(app_settings)):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "storage": None,
        "database_url": "✅ Set" if settings.DATABASE_URL else "❌ Not Set",
        "database_name": "✅ Set" if settings.DATABASE_NAME else "❌ Not Set",
        "strict_status_transitions": settings.STRICT_STATUS_TRANSITIONS,
        "collections": [],
    }
    try:
        if database.db is not None:
            response["storage"] = database.db.name
            response["collections"] = database.db.list_collection_names()
            response["database"] = "✅ Connected & Working"
    except Exception as e:
        logger.warning("Storage probe failed: %s", e)
        response["database"] = f"⚠️ Connected but Error: {str(e)[:80]}"
    return response


# ===================== Auth =====================
@router.post("/auth/register", status_code=201)
def register(payload: RegisterRequest):
    if get_documents("user", {"username": payload.username}, limit=1):
        raise ValidationError("Username already registered")
    user = User(
        username=payload.username,
        email=payload.email,
        password_hash=hash_password(payload.password),
        role=payload.role,
        phone=payload.phone,
        first_name=payload.first_name,
        last_name=payload.last_name,
    )
    created = create_document("user", user)
    logger.info("Registered user %s (%s)", created["id"], created["username"])
    return {"success": True, "message": "User registered successfully", "userId": created["id"]}


@router.post("/auth/login", response_model=LoginResponse)
def login(payload: LoginRequest, response: Response):
    users = get_documents("user", {"username": payload.username}, limit=1)
    if not users or not verify_password(payload.password, users[0]["password_hash"]):
        raise AuthenticationError("Invalid username or password")
    user = users[0]
    token = issue_token(user)
    response.set_cookie(
        TOKEN_COOKIE, token, max_age=TOKEN_MAX_AGE, httponly=True, samesite="strict", path="/",
    )
    logger.info("User %s logged in", user["id"])
    return {"user": user, "token": token}


@router.post("/auth/logout")
def logout(response: Response):
    response.delete_cookie(TOKEN_COOKIE, path="/", httponly=True, samesite="strict")
    return {"success": True, "message": "Logged out successfully"}


# ===================== Recipients =====================
@router.get("/recipients", response_model=List[RecipientRecord])
def list_recipients():
    return get_documents("recipient")


@router.post("/recipients", response_model=RecipientRecord, status_code=201)
def create_recipient(payload: Recipient, created_by: str = Depends(actor_id)):
    created = create_document("recipient", payload.model_copy(update={"created_by": created_by}))
    logger.info("Created recipient %s", created["id"])
    return created


@router.get("/recipients/{recipient_id}", response_model=RecipientRecord)
def get_recipient(recipient_id: str):
    return get_document_by_id("recipient", recipient_id)


@router.put("/recipients/{recipient_id}", response_model=RecipientRecord)
def update_recipient(recipient_id: str, payload: RecipientUpdate):
    return update_document("recipient", recipient_id, payload.changes())


@router.delete("/recipients/{recipient_id}", response_model=MessageResponse)
def remove_recipient(recipient_id: str):
    delete_document("recipient", recipient_id)
    logger.info("Deleted recipient %s", recipient_id)
    return {"message": "Recipient deleted successfully"}


# ===================== Hampers =====================
@router.get("/hampers", response_model=List[HamperRecord])
def list_hampers():
    return get_documents("hamper")


@router.post("/hampers", response_model=HamperRecord, status_code=201)
def create_hamper(payload: Hamper, created_by: str = Depends(actor_id)):
    created = create_document("hamper", payload.model_copy(update={"created_by": created_by}))
    logger.info("Created hamper %s", created["id"])
    return created


@router.get("/hampers/{hamper_id}", response_model=HamperRecord)
def get_hamper(hamper_id: str):
    return get_document_by_id("hamper", hamper_id)


@router.put("/hampers/{hamper_id}", response_model=HamperRecord)
def update_hamper(hamper_id: str, payload: HamperUpdate):
    return update_document("hamper", hamper_id, payload.changes())


@router.delete("/hampers/{hamper_id}", response_model=MessageResponse)
def remove_hamper(hamper_id: str):
    delete_document("hamper", hamper_id)
    logger.info("Deleted hamper %s", hamper_id)
    return {"message": "Hamper deleted successfully"}


# ===================== Deliveries =====================
@router.get("/deliveries", response_model=List[DeliveryRecord])
def list_deliveries():
    return get_documents("delivery")


@router.post("/deliveries", response_model=DeliveryRecord, status_code=201)
def create_delivery(payload: Delivery, created_by: str = Depends(actor_id)):
    created = create_document("delivery", payload.model_copy(update={"created_by": created_by}))
    logger.info("Created delivery %s (hamper %s -> recipient %s)",
                created["id"], created["hamper_id"], created["recipient_id"])
    return created


@router.get("/deliveries/{delivery_id}", response_model=DeliveryRecord)
def get_delivery(delivery_id: str):
    return get_document_by_id("delivery", delivery_id)


@router.put("/deliveries/{delivery_id}", response_model=DeliveryRecord)
def update_delivery(delivery_id: str, payload: DeliveryUpdate):
    return update_document("delivery", delivery_id, payload.changes())


@router.delete("/deliveries/{delivery_id}", response_model=MessageResponse)
def remove_delivery(delivery_id: str):
    delete_document("delivery", delivery_id)
    logger.info("Deleted delivery %s", delivery_id)
    return {"message": "Delivery deleted successfully"}


@router.put("/deliveries/{delivery_id}/status", response_model=DeliveryRecord)
def update_delivery_status(delivery_id: str, payload: StatusUpdateRequest,
                           settings: Settings = Depends(app_settings)):
    return lifecycle.update_status(delivery_id, payload.status, strict=settings.STRICT_STATUS_TRANSITIONS)


@router.put("/deliveries/{delivery_id}/assign", response_model=DeliveryRecord)
def assign_delivery(delivery_id: str, payload: AssignRequest,
                    settings: Settings = Depends(app_settings)):
    return lifecycle.assign(delivery_id, payload.user_id, strict=settings.STRICT_STATUS_TRANSITIONS)


# ===================== Reports =====================
@router.get("/reports/deliveries", response_model=DeliveryReport)
def get_delivery_report():
    return reports.delivery_report(get_documents("delivery"))


@router.get("/reports/recipients", response_model=RecipientReport)
def get_recipient_report():
    return reports.recipient_report(get_documents("recipient"))


@router.get("/reports/hampers", response_model=HamperReport)
def get_hamper_report():
    return reports.hamper_report(get_documents("hamper"))


# ===================== Users =====================
@router.get("/users/profile", response_model=UserProfile)
def get_profile(user: dict = Depends(current_user)):
    return user


@router.put("/users/profile", response_model=UserProfile)
def update_profile(payload: ProfileUpdate, user: dict = Depends(current_user)):
    # Blank values keep the stored ones
    changes = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v}
    return update_document("user", user["id"], changes)


@router.put("/users/password", response_model=MessageResponse)
def change_password(payload: PasswordChangeRequest, user: dict = Depends(current_user)):
    if not payload.current_password or not payload.new_password:
        raise ValidationError("Current password and new password are required")
    if not verify_password(payload.current_password, user["password_hash"]):
        raise ValidationError("Current password is incorrect")
    update_document("user", user["id"], {"password_hash": hash_password(payload.new_password)})
    logger.info("Password changed for user %s", user["id"])
    return {"message": "Password updated successfully"}


@router.get("/users/notifications", response_model=NotificationSettings)
def get_notifications(user: dict = Depends(current_user)):
    return user.get("notifications") or NotificationSettings().model_dump()


@router.put("/users/notifications", response_model=NotificationSettingsResponse)
def update_notifications(payload: NotificationSettingsUpdate, user: dict = Depends(current_user)):
    settings = user.get("notifications") or NotificationSettings().model_dump()
    for channel, values in payload.model_dump(exclude_none=True).items():
        settings[channel].update(values)
    update_document("user", user["id"], {"notifications": settings})
    return {"message": "Notification settings updated successfully", "settings": settings}


# ===================== App factory =====================
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(title=settings.APP_TITLE, version=settings.APP_VERSION)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    database.init_db(settings)
    if settings.SEED_DEMO_DATA:
        seed_demo_data()

    app.include_router(router)
    return app


configure_logging(get_settings().LOG_LEVEL)
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=get_settings().PORT)
