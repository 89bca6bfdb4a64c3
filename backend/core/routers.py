from rest_framework.routers import DefaultRouter


class OptionalSlashRouter(DefaultRouter):
    """DefaultRouter whose routes match with or without a trailing slash."""

    include_root_view = False
    include_format_suffixes = False

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.trailing_slash = "/?"
