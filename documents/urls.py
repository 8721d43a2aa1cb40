from django.urls import path

from documents.views.api import (
    api_document_create,
    api_document_detail,
    api_document_edit,
    api_document_status,
    api_invoice_delivery_notes,
    api_receive_purchase_order,
)

app_name = "documents"

urlpatterns = [
    path("documents/<str:document_type>/", api_document_create, name="document-create"),
    path("documents/<str:document_type>/<int:pk>/", api_document_detail, name="document-detail"),
    path("documents/<str:document_type>/<int:pk>/status/", api_document_status, name="document-status"),
    path("documents/<str:document_type>/<int:pk>/edit/", api_document_edit, name="document-edit"),
    path("delivery-notes/invoice/", api_invoice_delivery_notes, name="delivery-notes-invoice"),
    path("purchase-orders/<int:pk>/receive/", api_receive_purchase_order, name="purchase-order-receive"),
]
