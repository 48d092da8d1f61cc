from rest_framework.throttling import ScopedRateThrottle


class ActionScopedRateThrottle(ScopedRateThrottle):
    """Scoped throttle that picks its scope from the view action or HTTP method.

    Views can define:
      throttle_scope_map = {"send_message": "messages", "POST": "write"}

    The action name wins over the method. If nothing matches, this throttle
    does not apply.
    """

    def allow_request(self, request, view):
        scope_map = getattr(view, "throttle_scope_map", None)
        if not isinstance(scope_map, dict):
            return True

        scope = scope_map.get(getattr(view, "action", None) or "") or scope_map.get(str(request.method).upper())
        if not scope:
            return True

        # ScopedRateThrottle reads `view.throttle_scope`.
        setattr(view, "throttle_scope", scope)
        return super().allow_request(request, view)
