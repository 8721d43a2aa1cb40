from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from core.api import iso, json_errors, money, read_json
from documents.views.api import line_to_dict
from ledger.services.cash_control import create_cash_control
from ledger.services.sales_journal import build_sales_journal


def cash_control_to_dict(control):
    return {
        "id": control.pk,
        "number": control.number,
        "control_date": iso(control.control_date),
        "status": control.status,
        "cash_total": money(control.cash_total),
        "transfer_total": money(control.transfer_total),
        "check_total": money(control.check_total),
        "total_amount": money(control.total_amount),
        "notes": control.notes,
    }


@login_required
@require_http_methods(["POST"])
@json_errors
def api_cash_control_create(request):
    data = read_json(request)
    control = create_cash_control(data.get("control_date"), notes=data.get("notes") or "", by=request.user)
    return JsonResponse(cash_control_to_dict(control), status=201)


@login_required
@require_http_methods(["POST"])
@json_errors
def api_sales_journal_create(request):
    data = read_json(request)
    result = build_sales_journal(data.get("journal_date"), by=request.user)
    journal = result.journal
    return JsonResponse(
        {
            "id": journal.pk,
            "number": journal.number,
            "journal_date": iso(journal.journal_date),
            "status": journal.status,
            "subtotal_ht": money(journal.subtotal_ht),
            "total_vat": money(journal.total_vat),
            "total_ttc": money(journal.total_ttc),
            "line_items": [line_to_dict(line) for line in journal.lines.all()],
            "stats": result.as_dict(),
        },
        status=201,
    )
