from pydantic import BaseModel
from datetime import datetime
from typing import Optional, Literal

DocumentTypeLiteral = Literal["driver_id", "passport", "payment_proof", "other"]


class DocumentOut(BaseModel):
    document_id: int
    customer_id: int
    doc_type: DocumentTypeLiteral
    file_path: str
    original_name: str
    mime_type: str
    file_size: int
    upload_date: Optional[datetime] = None
    description: Optional[str] = None

    class Config:
        from_attributes = True


class DocumentWithCustomerOut(DocumentOut):
    customer_name: str
