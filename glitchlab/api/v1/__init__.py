"""API v1 routes."""

from fastapi import APIRouter

from glitchlab.api.v1 import auth, badges, instructors, reviews, users, workshops

api_router = APIRouter()

# Include all route modules
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(workshops.router, prefix="/workshops", tags=["Workshops"])
api_router.include_router(reviews.router, prefix="/reviews", tags=["Reviews"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(badges.router, prefix="/badges", tags=["Badges"])
api_router.include_router(instructors.router, prefix="/instructors", tags=["Instructors"])
