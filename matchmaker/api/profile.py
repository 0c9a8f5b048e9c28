"""Profile detail endpoint."""

import structlog
from fastapi import APIRouter, Depends
from matchmaker.core.dependencies import get_profile_repository
from matchmaker.core.errors import DatabaseError, InternalServerError, InvalidRequestError, MatchmakerError, NotFoundError
from matchmaker.schemas.profile import ProfileDetails
from matchmaker.services.profile_repository import ProfileRepository

router = APIRouter(prefix="/api/profile", tags=["profile"])
logger = structlog.get_logger(__name__)


@router.get("/{profile_id}", response_model=ProfileDetails)
async def get_profile(
    profile_id: str,
    repository: ProfileRepository = Depends(get_profile_repository),
) -> ProfileDetails:
    """Return the full profile row and all of its images."""
    try:
        parsed_id = int(profile_id)
    except ValueError:
        raise InvalidRequestError("Invalid profile ID")

    try:
        try:
            profile = await repository.get_profile(parsed_id)
        except DatabaseError as exc:
            logger.error("profile_fetch_failed", profile_id=parsed_id, error=exc.message)
            raise DatabaseError(f"Failed to fetch profile: {exc.message}") from exc

        if profile is None:
            raise NotFoundError("Profile not found")

        try:
            images = await repository.list_images(parsed_id)
        except DatabaseError as exc:
            # Images are decorative; the profile is still useful without them
            logger.warning("profile_images_fetch_failed", profile_id=parsed_id, error=exc.message)
            images = []

        return ProfileDetails(profile=profile, images=images)
    except MatchmakerError:
        raise
    except Exception as exc:
        logger.error("profile_request_failed", profile_id=parsed_id, error=str(exc), exc_info=True)
        raise InternalServerError("An error occurred while fetching the profile", str(exc)) from exc
