from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from core.api import iso, json_errors, money, read_json
from documents.services.delivery_invoicing import invoice_delivery_notes
from documents.services.document_service import get_service
from documents.services.purchase_receipt import receive_purchase_order

STATUS_PARAMS = ("paid_date", "payment_method")


def line_to_dict(line):
    data = {
        "position": line.position,
        "product_id": line.product_id,
        "product_sku": line.product_sku,
        "product_name": line.product_name,
        "quantity": line.quantity,
        "unit_price_ht": money(line.unit_price_ht),
        "total_ht": money(line.total_ht),
        "vat_percentage": money(line.vat_percentage),
        "vat_amount": money(line.vat_amount),
        "source": line.source,
    }
    if hasattr(line, "quantity_received"):
        data["quantity_received"] = line.quantity_received
    return data


def document_to_dict(document):
    role = document.counterpart_role
    data = {
        "id": document.pk,
        "document_type": document.document_type,
        "number": document.number,
        "date": iso(document.date),
        "status": document.status,
        f"{role}_name": document.counterpart_name,
        f"{role}_email": document.counterpart_email,
        f"{role}_phone": document.counterpart_phone,
        f"{role}_address": document.counterpart_address,
        "subtotal_ht": money(document.subtotal_ht),
        "total_vat": money(document.total_vat),
        "total_ttc": money(document.total_ttc),
        "notes": document.notes,
        "created_at": iso(document.created_at),
        "updated_at": iso(document.updated_at),
        "line_items": [line_to_dict(line) for line in document.lines.all()],
    }
    for name in document.EXTRA_FIELDS:
        value = getattr(document, name)
        data[name] = iso(value) if hasattr(value, "isoformat") else value

    # Type-specific links
    for name in ("source", "payment_method", "invoiced"):
        if hasattr(document, name):
            data[name] = getattr(document, name)
    if hasattr(document, "paid_date"):
        data["paid_date"] = iso(document.paid_date)
    if hasattr(document, "invoice_id"):
        data["invoice_id"] = document.invoice_id
    return data


@login_required
@require_http_methods(["POST"])
@json_errors
def api_document_create(request, document_type):
    service = get_service(document_type)
    document = service.create(read_json(request), by=request.user)
    return JsonResponse(document_to_dict(document), status=201)


@login_required
@require_http_methods(["GET"])
@json_errors
def api_document_detail(request, document_type, pk: int):
    document = get_service(document_type).get(pk)
    return JsonResponse(document_to_dict(document))


@login_required
@require_http_methods(["POST"])
@json_errors
def api_document_status(request, document_type, pk: int):
    service = get_service(document_type)
    data = read_json(request)
    params = {k: data[k] for k in STATUS_PARAMS if k in data}
    document = service.update_status(pk, data.get("status"), by=request.user, **params)
    return JsonResponse(document_to_dict(document))


@login_required
@require_http_methods(["POST"])
@json_errors
def api_document_edit(request, document_type, pk: int):
    document = get_service(document_type).edit(pk, read_json(request), by=request.user)
    return JsonResponse(document_to_dict(document))


@login_required
@require_http_methods(["POST"])
@json_errors
def api_invoice_delivery_notes(request):
    data = read_json(request)
    invoice = invoice_delivery_notes(
        data.get("delivery_note_ids"),
        invoice_date=data.get("invoice_date"),
        by=request.user,
    )
    result = document_to_dict(invoice)
    result["delivery_note_ids"] = list(invoice.delivery_notes.values_list("pk", flat=True))
    return JsonResponse(result, status=201)


@login_required
@require_http_methods(["POST"])
@json_errors
def api_receive_purchase_order(request, pk: int):
    data = read_json(request)
    order = receive_purchase_order(pk, data.get("received_items"), by=request.user)
    return JsonResponse(document_to_dict(order))
