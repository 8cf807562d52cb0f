import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import settings
from core.database import create_db_and_tables
from routes import auth, admin, driver, complaints, dashboards, functions, sms

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_db_and_tables()
    yield


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router, prefix="/auth")
app.include_router(admin.router, prefix="/admin")
app.include_router(driver.router, prefix="/driver")
app.include_router(complaints.router, prefix="/complaints")
app.include_router(functions.router, prefix="/functions")
app.include_router(sms.router, prefix="/sms")
app.include_router(dashboards.router)


@app.get("/", tags=["Test"])
def root(notice: str = None):
    body = {"message": "Waste Complaint Tracker API running"}
    if notice:
        body["notice"] = notice
    return body
