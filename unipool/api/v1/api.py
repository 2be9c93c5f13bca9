"""
Main API router for v1 endpoints.
"""

from fastapi import APIRouter

from unipool.api.v1 import users, rides, requests, bookings, notifications, ratings, chats

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(rides.router, prefix="/rides", tags=["rides"])
api_router.include_router(requests.router, prefix="/requests", tags=["requests"])
api_router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
api_router.include_router(ratings.router, prefix="/ratings", tags=["ratings"])
api_router.include_router(chats.router, prefix="/chats", tags=["chats"])
