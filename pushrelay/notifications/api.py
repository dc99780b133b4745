from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from pushrelay.config import settings
from pushrelay.database import get_async_db
from .classifier import mask_token
from .dispatcher import PushDispatcher
from .exceptions import NotificationError, raise_notification_http_exception
from .schemas import BroadcastNotificationRequest, NotificationSendResponse, UserNotificationRequest
from .service import NotificationService, get_dispatcher
import logging

router = APIRouter(tags=["Notifications"])
logger = logging.getLogger(__name__)


def get_notification_service(
    dispatcher: PushDispatcher = Depends(get_dispatcher)
) -> NotificationService:
    return NotificationService(dispatcher, prune_invalid_tokens=settings.prune_invalid_tokens)


@router.post(
    "/send-broadcast-notification",
    response_model=NotificationSendResponse,
    response_model_exclude_none=True
)
async def send_broadcast_notification(
    payload: BroadcastNotificationRequest,
    db: AsyncSession = Depends(get_async_db),
    service: NotificationService = Depends(get_notification_service)
):
    logger.info("Received broadcast notification request")
    if not payload.title or not payload.message:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Title and message are required"
        )

    try:
        result = await service.send_broadcast(
            db=db,
            title=payload.title,
            message=payload.message,
            data=payload.data,
            sound=payload.sound
        )
    except NotificationError as e:
        raise_notification_http_exception(e)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching users: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch users"
        )

    logger.info(f"Broadcast notification completed: {result.success} sent, {result.failed} failed")
    return NotificationSendResponse(
        sent_count=result.success,
        failed_count=result.failed,
        total_tokens=result.total
    )


@router.post(
    "/send-game-invitation",
    response_model=NotificationSendResponse,
    response_model_exclude_none=True
)
async def send_game_invitation(
    payload: UserNotificationRequest,
    db: AsyncSession = Depends(get_async_db),
    service: NotificationService = Depends(get_notification_service)
):
    logger.info(f"Received game invitation request for user {payload.user_id}")
    if not payload.user_id or not payload.title or not payload.message:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields"
        )

    try:
        push_token = await service.get_user_push_token(db, payload.user_id)
        if not push_token:
            # The invitation itself already exists; nothing to push to
            logger.info(f"No push token for user {payload.user_id}, skipping push notification")
            return NotificationSendResponse(
                sent_count=0,
                failed_count=0,
                message="No push token available"
            )

        logger.info(f"Sending game invitation to user {payload.user_id} with token {mask_token(push_token)}")
        result = await service.send_to_token(
            db=db,
            token=push_token,
            title=payload.title,
            message=payload.message,
            data={"type": "game_invitation", **payload.data}
        )
    except NotificationError as e:
        raise_notification_http_exception(e)
    except SQLAlchemyError as e:
        logger.error(f"Error looking up user {payload.user_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch user"
        )

    return NotificationSendResponse(
        sent_count=result.success,
        failed_count=result.failed,
        total_tokens=result.total
    )


@router.post(
    "/send-user-notification",
    response_model=NotificationSendResponse,
    response_model_exclude_none=True
)
async def send_user_notification(
    payload: UserNotificationRequest,
    db: AsyncSession = Depends(get_async_db),
    service: NotificationService = Depends(get_notification_service)
):
    if not payload.user_id or not payload.title or not payload.message:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields"
        )

    try:
        push_token = await service.get_user_push_token(db, payload.user_id)
        if not push_token:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found or no push token"
            )

        result = await service.send_to_token(
            db=db,
            token=push_token,
            title=payload.title,
            message=payload.message,
            data=payload.data
        )
    except NotificationError as e:
        raise_notification_http_exception(e)
    except SQLAlchemyError as e:
        logger.error(f"User notification error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error"
        )

    return NotificationSendResponse(
        sent_count=result.success,
        failed_count=result.failed
    )
