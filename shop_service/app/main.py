import logging
from contextlib import asynccontextmanager
from functools import lru_cache

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .config import settings
from .consumers import start_consumer_thread
from .database import Base, engine, get_db
from .errors import ServiceError
from .messaging.producer import RabbitMQProducer
from .notifications import LoggingNotifier, Notifier, RabbitMQNotifier
from .payments import HttpPaymentGateway, PaymentGateway, SimulatedPaymentGateway
from .schemas import ErrorResponse, InsertResult, OrderCreate, UserCreate
from .services import OrderService, UserService
from .storage import SqlAlchemyStorage, Storage

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.create_tables:
        # Create database tables on startup if they don't exist.
        Base.metadata.create_all(bind=engine)
    if settings.notifier == "rabbitmq":
        start_consumer_thread(settings.rabbitmq_host, settings.events_exchange)
    logger.info("Shop service ready")
    yield
    if settings.notifier == "rabbitmq":
        get_notifier().producer.close()


app = FastAPI(title="Shop Service", lifespan=lifespan)


# --- Dependencies ---
def get_storage(db: Session = Depends(get_db)) -> Storage:
    return SqlAlchemyStorage(db)


@lru_cache()
def get_payment_gateway() -> PaymentGateway:
    if settings.payment_service_url:
        return HttpPaymentGateway(settings.payment_service_url, timeout=settings.payment_timeout_seconds)
    return SimulatedPaymentGateway(decline_amount=settings.payment_decline_amount)


@lru_cache()
def get_notifier() -> Notifier:
    if settings.notifier == "rabbitmq":
        return RabbitMQNotifier(RabbitMQProducer(settings.rabbitmq_host, settings.events_exchange))
    return LoggingNotifier()


def get_user_service(
    storage: Storage = Depends(get_storage),
    notifier: Notifier = Depends(get_notifier),
) -> UserService:
    return UserService(storage, notifier)


def get_order_service(
    storage: Storage = Depends(get_storage),
    payments: PaymentGateway = Depends(get_payment_gateway),
    notifier: Notifier = Depends(get_notifier),
) -> OrderService:
    return OrderService(storage, payments, notifier)


def error_response(error: Exception) -> JSONResponse:
    """Every failure is a 500 carrying only the error message."""
    if isinstance(error, ServiceError):
        message = error.message
    else:
        logger.exception("Unexpected error while handling request")
        message = str(error)
    return JSONResponse(status_code=500, content={"error": message})


def validation_message(error: RequestValidationError) -> str:
    parts = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"] if part != "body")
        parts.append(f"{location}: {detail['msg']}" if location else detail["msg"])
    return "; ".join(parts)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, error: RequestValidationError):
    # Unparseable bodies fail like any other error: 500 with a message.
    message = validation_message(error)
    logger.info("Rejected request to %s: %s", request.url.path, message)
    return JSONResponse(status_code=500, content={"error": message})


# --- Endpoints ---
@app.get("/")
def root():
    """Health check endpoint."""
    return {"message": "Shop service is running"}


@app.post("/api/users", response_model=InsertResult, responses={500: {"model": ErrorResponse}})
def create_user(req: UserCreate, service: UserService = Depends(get_user_service)):
    try:
        return service.create_user(req.model_dump())
    except Exception as e:
        return error_response(e)


@app.post("/api/orders", response_model=InsertResult, responses={500: {"model": ErrorResponse}})
def create_order(req: OrderCreate, service: OrderService = Depends(get_order_service)):
    try:
        return service.create_order(req.model_dump())
    except Exception as e:
        return error_response(e)


def run():
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
