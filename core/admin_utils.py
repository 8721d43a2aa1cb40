"""Admin mixins to keep admin code simple and consistent."""

from django.contrib import messages

from core.exceptions import DocumentError
from core.permissions import grant_object_perms


class OwnerPermsAdminMixin:
    """Mixin: after save, grant guardian object permissions to the current user.

    This avoids relying on signals (signals don't know the request.user).
    """

    def save_model(self, request, obj, form, change):
        super().save_model(request, obj, form, change)
        if not change:
            grant_object_perms(request.user, obj)


class StatusActionsMixin:
    """Only offer the object-action buttons whose transition is available.

    Action names are "to_<target status>"; internal transitions never show.
    """

    def get_change_actions(self, request, object_id, form_url):
        actions = super().get_change_actions(request, object_id, form_url)
        obj = self.get_object(request, object_id)
        if not obj:
            return ()
        targets = {
            t.target
            for t in obj.get_available_status_transitions()
            if not t.custom.get("internal")
        }
        return tuple(a for a in actions if a.removeprefix("to_") in targets)

    def run_service_action(self, request, func, success_message):
        try:
            func()
            self.message_user(request, success_message, level=messages.SUCCESS)
        except DocumentError as e:
            self.message_user(request, f"{e.category}: {e.message}", level=messages.ERROR)
