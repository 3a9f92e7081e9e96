# app/models/document_model.py
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship

from app.utils.database import Base


class DocumentType:
    DRIVER_ID = "driver_id"
    PASSPORT = "passport"
    PAYMENT_PROOF = "payment_proof"
    OTHER = "other"

    ALL = (DRIVER_ID, PASSPORT, PAYMENT_PROOF, OTHER)


class Document(Base):
    __tablename__ = "documents"

    document_id = Column(Integer, primary_key=True, index=True)

    customer_id = Column(
        Integer,
        ForeignKey("customers.customer_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    doc_type = Column(String(30), nullable=False)

    # opaque storage reference, e.g. /uploads/doc_<uuid>.pdf
    file_path = Column(String(255), nullable=False)
    original_name = Column(String(255), nullable=False)
    mime_type = Column(String(100), nullable=False)
    file_size = Column(Integer, nullable=False)

    upload_date = Column(DateTime, server_default=func.now(), nullable=False)
    description = Column(Text, nullable=True)

    customer = relationship("Customer", back_populates="documents")
