# app/routers/documents_router.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from starlette import status

from app.models.document_model import Document
from app.schemas.document_schema import DocumentOut, DocumentTypeLiteral, DocumentWithCustomerOut
from app.services.record_store import RecordStore
from app.services.upload_service import UploadStorage, get_storage
from app.utils.dependencies import get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["Documents"])


# UPLOAD
@router.post("/upload/{customer_id}", response_model=DocumentOut, status_code=status.HTTP_201_CREATED)
def upload_document(
        customer_id: int,
        doc_type: DocumentTypeLiteral = Form(...),
        description: Optional[str] = Form(None),
        document: Optional[UploadFile] = File(None),
        store: RecordStore = Depends(get_store),
        storage: UploadStorage = Depends(get_storage),
):
    if document is None or not document.filename:
        raise HTTPException(400, "No file uploaded")

    store.get_customer(customer_id)

    with storage.stored(document, "doc") as stored:
        with store.transaction():
            doc = Document(
                customer_id=customer_id,
                doc_type=doc_type,
                file_path=stored.ref,
                original_name=stored.original_name,
                mime_type=stored.mime_type,
                file_size=stored.size,
                description=(description or "").strip() or None,
            )
            store.db.add(doc)

    store.db.refresh(doc)
    return doc


# LIST FOR CUSTOMER
@router.get("/customer/{customer_id}", response_model=list[DocumentOut])
def list_documents(
        customer_id: int,
        doc_type: Optional[DocumentTypeLiteral] = None,
        store: RecordStore = Depends(get_store),
):
    store.get_customer(customer_id)
    q = store.db.query(Document).filter(Document.customer_id == customer_id)
    if doc_type:
        q = q.filter(Document.doc_type == doc_type)
    return q.order_by(Document.upload_date.desc(), Document.document_id.desc()).all()


# READ ONE (dynamic, after the static routes)
@router.get("/{document_id}", response_model=DocumentWithCustomerOut)
def get_document(document_id: int, store: RecordStore = Depends(get_store)):
    doc = store.db.query(Document).filter(Document.document_id == document_id).first()
    if not doc:
        raise HTTPException(404, "Document not found")

    return DocumentWithCustomerOut(
        **DocumentOut.model_validate(doc).model_dump(),
        customer_name=doc.customer.full_name,
    )


# DELETE
@router.delete("/{document_id}")
def delete_document(
        document_id: int,
        store: RecordStore = Depends(get_store),
        storage: UploadStorage = Depends(get_storage),
):
    doc = store.db.query(Document).filter(Document.document_id == document_id).first()
    if not doc:
        raise HTTPException(404, "Document not found")

    ref = doc.file_path
    with store.transaction():
        store.db.delete(doc)

    storage.delete(ref)
    logger.info("Document %s deleted", document_id)
    return {"message": "Document deleted successfully"}
