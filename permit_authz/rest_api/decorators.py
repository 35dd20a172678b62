"""Decorators for declaring the abilities required by REST API views."""

from functools import wraps


def requires_ability(ability: str, object_level: bool = False):
    """Decorator to attach the required ability to a view method.

    The ability is checked by ``HasAbility`` for requests handled by the method.

    Args:
        ability: The ability the user must be allowed (e.g., "posts.update").
        object_level: Check the ability only against the object passed to
            ``check_object_permissions``, never at view level with no resource.

    Examples:
        >>> class PostView(APIView):
        ...     permission_classes = [HasAbility]
        ...
        ...     @requires_ability("posts.view")
        ...     def get(self, request):
        ...         pass
        ...
        ...     @requires_ability("posts.update", object_level=True)
        ...     def put(self, request):
        ...         self.check_object_permissions(request, self.get_post())
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            return func(*args, **kwargs)

        wrapper.required_ability = ability
        wrapper.object_level = object_level
        return wrapper

    return decorator
