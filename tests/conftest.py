import os
import tempfile
from datetime import date, timedelta

_workdir = tempfile.mkdtemp(prefix="handyhive-tests-")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_FILE"] = os.path.join(_workdir, "handyhive.log")
os.environ["KYC_UPLOAD_DIR"] = os.path.join(_workdir, "kyc")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from handyhive.database import Base, SessionLocal
from handyhive.main import app
from handyhive.schemas.booking_schema import BookingCreate, PaymentMethod
from handyhive.schemas.kyc_schema import AddressProofType, IdProofType, KycReview, KycStatus, KycSubmit
from handyhive.schemas.skill_schema import SkillIn, SkillSet
from handyhive.schemas.user_schema import UserCreate
from handyhive.security.actor import Actor
from handyhive.security.auth import create_access_token
from handyhive.services.booking_crud import booking_crud
from handyhive.services.kyc_crud import kyc_crud
from handyhive.services.skill_crud import skill_crud
from handyhive.services.user_crud import user_crud
from handyhive.utils.document_storage import document_path, document_storage


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    SessionLocal.configure(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(db_engine):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db_engine):
    with TestClient(app) as test_client:
        yield test_client


def make_user(db, email, is_provider=False, is_admin=False, full_name=None):
    return user_crud.create_user(
        db,
        UserCreate(
            email=email,
            full_name=full_name or email.split("@")[0].title(),
            password="password123",
            is_provider=is_provider,
        ),
        is_admin=is_admin,
    )


def auth_headers(user):
    token, _ = create_access_token(data={"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


def store_document(user, folder="id-proof", content_type="image/jpeg", data=b"scan"):
    return document_storage.upload(document_path(str(user.id), folder, content_type), data)


def submit_kyc(db, provider):
    return kyc_crud.submit(
        db,
        provider,
        KycSubmit(
            id_proof_type=IdProofType.aadhaar,
            id_proof_url=store_document(provider, "id-proof", "image/jpeg"),
            address_proof_type=AddressProofType.utility_bill,
            address_proof_url=store_document(provider, "address-proof", "application/pdf"),
        ),
    )


def give_skills(db, provider, *names):
    return skill_crud.set_skills(db, provider, SkillSet(skills=[SkillIn(skill_name=name) for name in names]))


def set_kyc(db, record, admin, kyc_status, reason=None):
    return kyc_crud.review(db, record.id, KycReview(status=kyc_status, rejection_reason=reason), admin)


def tomorrow():
    return date.today() + timedelta(days=1)


def make_booking(db, customer, provider, category="plumbing", payment_method=PaymentMethod.online,
                 scheduled_time="10:00 AM", scheduled_date=None, is_emergency=False):
    return booking_crud.create_booking(
        db,
        BookingCreate(
            provider_id=provider.id,
            service_category=category,
            scheduled_date=scheduled_date or tomorrow(),
            scheduled_time=scheduled_time,
            payment_method=payment_method,
            customer_address="12 MG Road, Bengaluru",
            is_emergency=is_emergency,
        ),
        customer,
    )


@pytest.fixture
def admin(db):
    return make_user(db, "admin@handyhive.in", is_admin=True)


@pytest.fixture
def customer(db):
    return make_user(db, "asha@example.com")


@pytest.fixture
def provider(db, admin):
    """A provider whose KYC is approved"""
    user = make_user(db, "ravi@example.com", is_provider=True)
    give_skills(db, user, "plumbing")
    set_kyc(db, submit_kyc(db, user), admin, KycStatus.approved)
    db.refresh(user)
    return user


@pytest.fixture
def unverified_provider(db):
    user = make_user(db, "kiran@example.com", is_provider=True)
    give_skills(db, user, "plumbing")
    return user


@pytest.fixture
def stranger(db):
    return make_user(db, "stranger@example.com")


@pytest.fixture
def booking(db, customer, provider):
    return make_booking(db, customer, provider)


def actor(user):
    return Actor.from_user(user)
