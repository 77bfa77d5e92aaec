# convert_server/routes/__init__.py
from convert_server.routes.auth import router as auth_router
from convert_server.routes.convert import router as convert_router
from convert_server.routes.payment import router as payment_router
from convert_server.routes.tools import router as tools_router
from convert_server.routes.usage import router as usage_router

__all__ = ["auth_router", "convert_router", "payment_router", "tools_router", "usage_router"]
