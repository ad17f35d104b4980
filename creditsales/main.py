import logging
import os
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from creditsales.modules.database import ConnectToMongoDB, DisconnectMongoDB
from creditsales.modules.exceptions import CreditSalesError, CreditSalesErrorHandler
from creditsales.routes import main
from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app_version = os.getenv("API_VERSION", "1.0.0")

origins = os.getenv("ORIGINS", "http://localhost:3000").split(", ")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await ConnectToMongoDB()
    yield
    await DisconnectMongoDB()


app = FastAPI(
    title="Credit Sales RESTful API",
    description="RESTful API for credit sales, billing and payment collection",
    version=app_version,
    lifespan=lifespan,
)
app.add_exception_handler(CreditSalesError, CreditSalesErrorHandler)
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(main.router)


@app.get("/")
async def root():
    app_info = {"name": "Credit Sales RESTful API", "version": f"v{app_version}"}
    return app_info
