from .base import LineSource
from .orders import ImportedOrder, ImportedOrderLine
from .purchase import PurchaseOrder, PurchaseOrderLine
from .sales import (
    DeliveryNote,
    DeliveryNoteLine,
    Invoice,
    InvoiceLine,
    Quote,
    QuoteLine,
    ReturnNote,
    ReturnNoteLine,
)
