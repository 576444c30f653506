from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi import Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from support_form.api.routes import router as forms_router
from support_form.api.graphql_routes import router as graphql_router, GRAPHQL_PATH
from support_form.api.admin_routes import router as admin_router
from support_form.errors import SupportFormError
from support_form.observability.logging import log
from support_form.settings import settings
from support_form.storage.files import ensure_upload_dir

@asynccontextmanager
async def lifespan(app: FastAPI):
    path = ensure_upload_dir()
    log(event="server_ready", graphqlPath=GRAPHQL_PATH, uploadDir=path, port=settings.PORT)
    yield

app = FastAPI(title="Support Form API", lifespan=lifespan)

# Browser forms post cross-origin; restrict via CORS_ORIGINS in production.
origins = [x.strip() for x in settings.CORS_ORIGINS.split(",") if x.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(graphql_router)
app.include_router(forms_router)
app.include_router(admin_router)

@app.get("/")
def root():
    return {
        "status": "ok",
        "message": f"Support Form API is running. POST GraphQL requests to {GRAPHQL_PATH}.",
    }

@app.get("/health")
def health():
    return {"status": "ok"}

@app.exception_handler(SupportFormError)
async def support_form_exception_handler(request: Request, exc: SupportFormError):
    # Domain errors that escaped a route map to a client error with the user-facing text.
    message = getattr(exc, "message", None) or str(exc)
    log(event="unhandled_domain_error", path=request.url.path, errorType=type(exc).__name__, error=message)
    return JSONResponse(status_code=400, content={"detail": message})
