from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from handyhive.config import CORS_ORIGINS
from handyhive.database import Base, engine
from handyhive.exceptions import BookingError, booking_error_handler
from handyhive.middleware import add_request_id_and_process_time
from handyhive.models import booking_model, kyc_model, notification_model, review_model, revoked_token_model, skill_model, user_model  # noqa: F401
from handyhive.routes.user_route import user_router
from handyhive.routes.booking_route import booking_router
from handyhive.routes.kyc_route import kyc_router
from handyhive.routes.skill_route import skill_router
from handyhive.routes.review_route import review_router
from handyhive.routes.earnings_route import earnings_router
from handyhive.routes.notification_route import notification_router
from handyhive.routes.realtime_route import realtime_router


Base.metadata.create_all(bind=engine)
app = FastAPI(
    title="HandyHive API",
    version="1.0.0",
    description="Booking core for HandyHive, a hyperlocal marketplace where customers book verified home-service providers.",
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.middleware("http")(add_request_id_and_process_time)
app.add_exception_handler(BookingError, booking_error_handler)


@app.get("/", status_code=200)
async def home():
    return {"message": "Welcome to the HandyHive API"}


app.include_router(user_router, prefix="/api", tags=["Users"])
app.include_router(booking_router, prefix="/api", tags=["Bookings"])
app.include_router(kyc_router, prefix="/api", tags=["KYC"])
app.include_router(skill_router, prefix="/api", tags=["Skills"])
app.include_router(review_router, prefix="/api", tags=["Reviews"])
app.include_router(earnings_router, prefix="/api", tags=["Earnings"])
app.include_router(notification_router, prefix="/api", tags=["Notifications"])
app.include_router(realtime_router, tags=["Realtime"])
