"""Роуты /integrations: статус Slack и отладка настройки канала."""
from fastapi import APIRouter, Depends

from deviceflow.modules.inventory.dependencies import (
    get_current_user,
    get_notification_gateway,
    require_admin,
)
from deviceflow.modules.inventory.models import User
from deviceflow.modules.inventory.schemas.integration import (
    IntegrationStatusResponse,
    SlackChannelsResponse,
    SlackStatus,
)
from deviceflow.modules.inventory.services.slack_service import NotificationGateway

router = APIRouter(prefix="/integrations", tags=["integrations"])


@router.get("/status", response_model=IntegrationStatusResponse)
def get_integrations_status(
    user: User = Depends(get_current_user),
    gateway: NotificationGateway = Depends(get_notification_gateway),
) -> IntegrationStatusResponse:
    """Настроены ли внешние интеграции."""
    configured = gateway.is_configured()
    return IntegrationStatusResponse(
        slack=SlackStatus(
            configured=configured,
            status="active" if configured else "inactive",
        )
    )


@router.get("/slack/channels", response_model=SlackChannelsResponse)
async def list_slack_channels(
    user: User = Depends(require_admin),
    gateway: NotificationGateway = Depends(get_notification_gateway),
) -> SlackChannelsResponse:
    """Каналы, видимые боту (только admin)."""
    channels = await gateway.list_channels()
    return SlackChannelsResponse(channels=channels)
