from .resume import resume_router

__all__ = ["resume_router"]
