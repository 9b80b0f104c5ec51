from .routes.instanceRoute import router as instanceRoute
from .routes.conversationRoute import router as conversationRoute
from .routes.realtimeRoute import router as realtimeRoute

__all__ = ['instanceRoute', 'conversationRoute', 'realtimeRoute']
