from django.urls import path

from core.views import api_allocate_number, api_numbering_settings

app_name = "core"

urlpatterns = [
    path("numbering/allocate/", api_allocate_number, name="numbering-allocate"),
    path("numbering/settings/", api_numbering_settings, name="numbering-settings"),
]
