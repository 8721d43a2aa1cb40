from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_http_methods

from core.api import json_errors, read_json
from core.exceptions import DocumentValidationError
from core.models import NumberingSequence
from documents.services.document_service import parse_date_value


@login_required
@require_http_methods(["POST"])
@json_errors
def api_allocate_number(request):
    data = read_json(request)
    document_type = str(data.get("document_type") or "").strip()
    if not document_type:
        raise DocumentValidationError("document_type is required.")
    as_of = parse_date_value(data.get("date"), "date") or timezone.localdate()

    number = NumberingSequence.allocate(document_type, as_of)
    return JsonResponse({"number": number})


@login_required
@require_http_methods(["POST"])
@json_errors
def api_numbering_settings(request):
    data = read_json(request)
    document_type = str(data.get("document_type") or "").strip()
    if not document_type:
        raise DocumentValidationError("document_type is required.")

    try:
        year = int(data.get("year") or timezone.localdate().year)
        next_number = data.get("next_number")
        next_number = int(next_number) if next_number not in (None, "") else None
    except (TypeError, ValueError):
        raise DocumentValidationError("year and next_number must be whole numbers.")

    prefix = data.get("prefix")
    series = NumberingSequence.configure(
        document_type,
        year,
        prefix=str(prefix) if prefix is not None else None,
        next_number=next_number,
    )
    return JsonResponse({
        "document_type": series.document_type,
        "year": series.year,
        "prefix": series.prefix,
        "next_number": series.next_number,
        "next": series.format(series.next_number),
    })
