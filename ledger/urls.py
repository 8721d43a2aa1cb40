from django.urls import path

from . import views

app_name = "ledger"

urlpatterns = [
    path("cash-controls/", views.api_cash_control_create, name="cash-control-create"),
    path("sales-journals/", views.api_sales_journal_create, name="sales-journal-create"),
]
