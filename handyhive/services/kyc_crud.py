from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID
from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session
from handyhive.models.kyc_model import KycVerification
from handyhive.models.user_model import User
from handyhive.schemas.kyc_schema import KycReview, KycStatus, KycSubmit
from handyhive.services.notification_service import NotificationDispatcher, notification_dispatcher
from handyhive.utils.document_storage import LocalDocumentStorage, document_storage
from handyhive.logger import get_logger

logger = get_logger(__name__)


class KycGate:
    """Authoritative answer to "may this provider accept bookings right now?"

    Always reads the current row; approval and rejection happen out-of-band
    so the answer must never be cached across a request.
    """

    @staticmethod
    def current_status(db: Session, provider_id: str) -> Optional[str]:
        return db.execute(
            select(KycVerification.status).where(KycVerification.user_id == str(provider_id))
        ).scalar_one_or_none()

    @staticmethod
    def is_approved(db: Session, provider_id: str) -> bool:
        return KycGate.current_status(db, provider_id) == KycStatus.approved.value

    @staticmethod
    def approved_clause(provider_id: str):
        """SQL EXISTS condition, true while the provider's KYC row is approved"""
        return (
            select(KycVerification.id)
            .where(
                KycVerification.user_id == str(provider_id),
                KycVerification.status == KycStatus.approved.value,
            )
            .exists()
        )


class KycCRUD:
    def __init__(self, notifier: NotificationDispatcher, storage: LocalDocumentStorage):
        self.notifier = notifier
        self.storage = storage

    @staticmethod
    def get_for_user(db: Session, user_id: UUID) -> Optional[KycVerification]:
        return db.query(KycVerification).filter(KycVerification.user_id == str(user_id)).first()

    @staticmethod
    def get_by_id(db: Session, kyc_id: UUID) -> Optional[KycVerification]:
        return db.query(KycVerification).filter(KycVerification.id == str(kyc_id)).first()

    @staticmethod
    def get_verifications(
            db: Session, kyc_status: Optional[str] = None, skip: int = 0, limit: int = 100
    ) -> List[KycVerification]:
        query = db.query(KycVerification)
        if kyc_status:
            query = query.filter(KycVerification.status == kyc_status)
        return query.order_by(KycVerification.created_at.desc()).offset(skip).limit(limit).all()

    def submit(self, db: Session, user: User, submission: KycSubmit) -> KycVerification:
        """Create the provider's KYC record, or overwrite it in place on re-submission"""
        if not user.is_provider:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only providers can submit KYC documents",
            )

        record = self.get_for_user(db, user.id)
        if record and record.status == KycStatus.approved.value:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="KYC is already approved",
            )

        documents = [submission.id_proof_url, submission.address_proof_url, *submission.additional_certificates]
        for path in documents:
            if not self.storage.belongs_to(path, str(user.id)):
                logger.warning(f"Provider {user.id} submitted KYC with foreign or missing document {path!r}")
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Document {path} was not uploaded by this provider",
                )

        now = datetime.now(timezone.utc)
        try:
            if record is None:
                record = KycVerification(user_id=str(user.id), created_at=now)
                db.add(record)

            record.id_proof_type = submission.id_proof_type.value
            record.id_proof_url = submission.id_proof_url
            record.address_proof_type = submission.address_proof_type.value
            record.address_proof_url = submission.address_proof_url
            record.additional_certificates = list(submission.additional_certificates)
            record.status = KycStatus.pending.value
            record.rejection_reason = None
            record.reviewed_at = None
            record.reviewed_by = None
            record.updated_at = now
            user.kyc_status = KycStatus.pending.value
            user.is_verified = False

            db.commit()
            db.refresh(record)
            logger.info(f"KYC submitted by provider {user.id}")
            return record

        except Exception as e:
            db.rollback()
            logger.error(f"Error submitting KYC for {user.id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error occurred while submitting KYC",
            )

    def review(self, db: Session, kyc_id: UUID, decision: KycReview, admin: User) -> KycVerification:
        """Admin decision on a KYC record; mirrors the outcome onto the provider's profile"""
        record = self.get_by_id(db, kyc_id)
        if not record:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="KYC verification not found"
            )

        try:
            record.status = decision.status.value
            record.reviewed_at = datetime.now(timezone.utc)
            record.reviewed_by = str(admin.id)
            record.rejection_reason = (
                decision.rejection_reason.strip() if decision.status == KycStatus.rejected else None
            )
            record.updated_at = record.reviewed_at

            provider = db.query(User).filter(User.id == record.user_id).first()
            if provider:
                provider.kyc_status = record.status
                provider.is_verified = record.status == KycStatus.approved.value

            db.commit()
            db.refresh(record)
            logger.info(f"KYC {kyc_id} marked {record.status} by admin {admin.id}")

        except Exception as e:
            db.rollback()
            logger.error(f"Error reviewing KYC {kyc_id}: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error occurred while reviewing KYC",
            )

        if record.status == KycStatus.approved.value:
            self.notifier.notify(
                db, record.user_id, "KYC Approved",
                "Congratulations! Your KYC verification has been approved. You can now accept bookings.",
                "kyc", "/provider",
            )
        elif record.status == KycStatus.rejected.value:
            self.notifier.notify(
                db, record.user_id, "KYC Rejected",
                f"Your KYC verification was rejected. Reason: {record.rejection_reason}",
                "kyc", "/provider/kyc",
            )
        return record


kyc_gate = KycGate()
kyc_crud = KycCRUD(notifier=notification_dispatcher, storage=document_storage)
