import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, File, Header, Query, Request, UploadFile
from fastapi.responses import JSONResponse
from pymongo import MongoClient

from app.config import Settings, get_settings
from app.db import ensure_indexes, get_database
from app.errors import AppError, Unauthorized, ValidationError
from app.middleware import UploadLimitMiddleware
from app.models import ApiKeyRequest, LoginRequest, RegisterRequest
from app.services.ai_service import AIService
from app.services.analysis_service import AnalysisService
from app.services.auth_service import AuthService
from app.services.extract_service import TextExtractor
from app.services.key_service import KeyService
from app.services.storage_service import StorageService
from app.services.store_service import StoreService

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings = None,
    mongo_client: MongoClient = None,
    ai_service: AIService = None,
    extractor: TextExtractor = None,
) -> FastAPI:
    """
    Build the application. Run with `uvicorn --factory app.main:create_app`.
    """
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    client = mongo_client or MongoClient(settings.mongodb_uri, connect=False)
    db = get_database(client, settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ensure_indexes(db)
        logger.info(f"Using MongoDB database {settings.mongodb_database}")
        yield
        client.close()

    app = FastAPI(title="ResumeReview", lifespan=lifespan)
    app.add_middleware(UploadLimitMiddleware, max_bytes=settings.max_upload_bytes)

    # Services share the one client created above
    key_service = KeyService(db)
    storage_service = StorageService(settings)
    store_service = StoreService(db)
    app.state.settings = settings
    app.state.auth_service = AuthService(db, settings)
    app.state.key_service = key_service
    app.state.storage_service = storage_service
    app.state.store_service = store_service
    app.state.analysis_service = AnalysisService(
        settings,
        keys=key_service,
        storage=storage_service,
        extractor=extractor or TextExtractor(),
        ai=ai_service or AIService(settings),
        store=store_service,
    )

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})

    register_routes(app)
    return app


def get_current_user(request: Request, authorization: str = Header(None)) -> dict:
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthorized()

    token = authorization.split("Bearer ", 1)[1].strip()
    if not token:
        raise Unauthorized()
    return request.app.state.auth_service.verify_token(token)


def register_routes(app: FastAPI):
    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    @app.post("/api/register", status_code=201)
    def register(body: RegisterRequest, request: Request):
        user, token = request.app.state.auth_service.register(
            body.email, body.password, body.confirm_password
        )
        return {
            'message': 'User created successfully',
            'token': token,
            'user': {'id': user.id, 'email': user.email}
        }

    @app.post("/api/login")
    def login(body: LoginRequest, request: Request):
        user, token = request.app.state.auth_service.login(
            body.email, body.password, body.remember_me
        )
        return {
            'message': 'Login successful',
            'token': token,
            'user': {'id': user.id, 'email': user.email}
        }

    @app.post("/api/api-keys")
    def save_api_key(body: ApiKeyRequest, request: Request, user: dict = Depends(get_current_user)):
        created = request.app.state.key_service.upsert(user['id'], body.service_name, body.api_key)
        if created:
            return {'message': 'API key saved successfully'}
        return {'message': 'API key updated successfully'}

    @app.get("/api/api-keys")
    def list_api_keys(request: Request, user: dict = Depends(get_current_user)):
        return request.app.state.key_service.list_services(user['id'])

    @app.post("/api/analyze")
    async def analyze_resume(
        request: Request,
        resume: Optional[UploadFile] = File(None),
        user: dict = Depends(get_current_user)
    ):
        if resume is None:
            raise ValidationError("Resume file is required")

        document = await request.app.state.storage_service.accept(
            resume, resume.filename, resume.content_type
        )
        record = await request.app.state.analysis_service.analyze(user['id'], document)

        return {
            'message': 'Resume analyzed successfully',
            'analysis': record.result.model_dump(by_alias=True),
            'resumeId': record.id
        }

    @app.get("/api/history")
    def get_history(
        request: Request,
        limit: Optional[int] = Query(None, ge=1, le=100),
        user: dict = Depends(get_current_user)
    ):
        summaries = request.app.state.store_service.list_by_user(user['id'], limit)
        return [s.model_dump(by_alias=True, mode="json") for s in summaries]

    @app.get("/api/analysis/{analysis_id}")
    def get_analysis(analysis_id: int, request: Request, user: dict = Depends(get_current_user)):
        record = request.app.state.store_service.get_by_id_for_user(analysis_id, user['id'])
        return {
            'originalName': record.original_name,
            'analysis': record.result.model_dump(by_alias=True),
            'score': record.score,
            'createdAt': record.created_at.isoformat()
        }

