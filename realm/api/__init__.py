"""
HTTP routers for the realm server.

Each feature has its own ``APIRouter``; ``realm.app.factory`` mounts them.
"""
