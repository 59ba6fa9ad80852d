# main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from votedapp.config import CORS_ORIGINS
from votedapp.database.connection import close_database
from votedapp.routes.admin_routes import router as admin_router
from votedapp.routes.authentication_routes import router as authentication_router
from votedapp.routes.image_routes import router as image_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    close_database()


app = FastAPI(title="Voting DApp - Image Relay and Authentication API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
)

app.include_router(authentication_router)
app.include_router(image_router)
app.include_router(admin_router)


@app.get("/", tags=["Root"])
def read_root():
    return {"message": "Welcome to the Voting DApp API"}


@app.get("/health", tags=["Root"])
def health_check():
    return {"status": "healthy", "database": "MongoDB"}
