from pydantic import BaseModel, Field, model_validator
from typing import List, Optional
from uuid import UUID
from datetime import datetime
from enum import Enum


class KycStatus(str, Enum):
    pending = "pending"
    under_review = "under_review"
    approved = "approved"
    rejected = "rejected"


class IdProofType(str, Enum):
    aadhaar = "aadhaar"
    pan = "pan"
    passport = "passport"
    driving_license = "driving_license"
    voter_id = "voter_id"


class AddressProofType(str, Enum):
    aadhaar = "aadhaar"
    utility_bill = "utility_bill"
    bank_statement = "bank_statement"
    rent_agreement = "rent_agreement"
    passport = "passport"


class DocumentFolder(str, Enum):
    id_proof = "id-proof"
    address_proof = "address-proof"
    certificates = "certificates"


class KycSubmit(BaseModel):
    id_proof_type: IdProofType
    id_proof_url: str = Field(..., min_length=1)
    address_proof_type: AddressProofType
    address_proof_url: str = Field(..., min_length=1)
    additional_certificates: List[str] = Field(default_factory=list)


class KycReview(BaseModel):
    status: KycStatus
    rejection_reason: Optional[str] = Field(None, max_length=1000)

    @model_validator(mode='after')
    def review_outcome_rules(self):
        if self.status == KycStatus.pending:
            raise ValueError('status must be under_review, approved or rejected')
        if self.status == KycStatus.rejected and not (self.rejection_reason or "").strip():
            raise ValueError('rejection_reason is required when rejecting')
        return self


class KycResponse(BaseModel):
    id: UUID
    user_id: UUID
    status: KycStatus
    id_proof_type: str
    id_proof_url: str
    address_proof_type: str
    address_proof_url: str
    additional_certificates: List[str]
    rejection_reason: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    reviewed_by: Optional[UUID] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class DocumentUploadResponse(BaseModel):
    path: str
