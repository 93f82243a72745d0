from .models import Resume

__all__ = ["Resume"]
