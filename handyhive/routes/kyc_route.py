from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from uuid import UUID
from typing import List, Optional
from handyhive.config import KYC_MAX_UPLOAD_BYTES
from handyhive.services.kyc_crud import kyc_crud
from handyhive.schemas.kyc_schema import DocumentFolder, DocumentUploadResponse, KycResponse, KycReview, KycStatus, KycSubmit
from handyhive.database import get_db
from handyhive.security.auth import get_current_admin_user, get_current_provider_user
from handyhive.models.user_model import User
from handyhive.utils.document_storage import (
    ALLOWED_CONTENT_TYPES,
    LocalDocumentStorage,
    UploadError,
    document_path,
    get_document_storage,
)
from handyhive.logger import get_logger

kyc_router = APIRouter()
logger = get_logger(__name__)


# PROVIDER ENDPOINTS


@kyc_router.post(
    "/kyc/documents", response_model=DocumentUploadResponse, status_code=status.HTTP_201_CREATED
)
async def upload_kyc_document(
    folder: DocumentFolder = Form(...),
    file: UploadFile = File(...),
    current_user: User = Depends(get_current_provider_user),
    storage: LocalDocumentStorage = Depends(get_document_storage),
):
    """Upload one verification document (PDF, JPG or PNG, max 5 MB)"""
    if file.content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail="Documents must be PDF, JPG or PNG",
        )
    data = await file.read()
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Document is empty")
    if len(data) > KYC_MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Document is larger than 5 MB",
        )

    try:
        path = await run_in_threadpool(
            storage.upload, document_path(str(current_user.id), folder.value, file.content_type), data
        )
        return DocumentUploadResponse(path=path)
    except UploadError as e:
        logger.error(f"Error uploading KYC document for {current_user.email}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while uploading document",
        )


@kyc_router.post("/kyc", response_model=KycResponse, status_code=status.HTTP_201_CREATED)
def submit_kyc(
    submission: KycSubmit,
    current_user: User = Depends(get_current_provider_user),
    db: Session = Depends(get_db),
):
    """Submit (or re-submit after rejection) KYC documents for review"""
    logger.info(f"Provider {current_user.email} submitting KYC")
    record = kyc_crud.submit(db, current_user, submission)
    return KycResponse.model_validate(record)


@kyc_router.get("/kyc/me", response_model=KycResponse, status_code=status.HTTP_200_OK)
def get_my_kyc(
    current_user: User = Depends(get_current_provider_user),
    db: Session = Depends(get_db),
):
    record = kyc_crud.get_for_user(db, current_user.id)
    if not record:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="No KYC submission found"
        )
    return KycResponse.model_validate(record)


# ADMIN ENDPOINTS


@kyc_router.get(
    "/admin/kyc", response_model=List[KycResponse], status_code=status.HTTP_200_OK
)
def list_kyc_verifications(
    kyc_status: Optional[KycStatus] = Query(None, description="Filter by KYC status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
    current_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    """Review queue of KYC submissions (admin only)"""
    try:
        records = kyc_crud.get_verifications(
            db, kyc_status.value if kyc_status else None, skip=skip, limit=limit
        )
        return [KycResponse.model_validate(record) for record in records]

    except Exception as e:
        logger.error(f"Error fetching KYC verifications: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error occurred while fetching KYC verifications",
        )


@kyc_router.patch(
    "/admin/kyc/{kyc_id}", response_model=KycResponse, status_code=status.HTTP_200_OK
)
def review_kyc(
    kyc_id: UUID,
    decision: KycReview,
    current_user: User = Depends(get_current_admin_user),
    db: Session = Depends(get_db),
):
    """Move a KYC submission to under_review, approved or rejected (admin only)"""
    logger.info(f"Admin {current_user.email} setting KYC {kyc_id} to {decision.status.value}")
    record = kyc_crud.review(db, kyc_id, decision, current_user)
    return KycResponse.model_validate(record)
