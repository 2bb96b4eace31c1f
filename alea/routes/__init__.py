from .activity import router as activity_router
from .auth import router as auth_router
from .courses import router as courses_router
from .jobs import router as jobs_router
from .notifications import router as notifications_router

__all__ = ['auth_router', 'jobs_router', 'courses_router', 'notifications_router', 'activity_router']
