# Automatically load all models so metadata knows them
from app.models.customer_model import Customer, CustomerStatus
from app.models.payment_model import Payment, PaymentStatus
from app.models.document_model import Document, DocumentType
