"""Built-in utility tools."""

import logging
import zoneinfo
from datetime import datetime

from pydantic import Field

from zuychin.config import settings
from zuychin.tools.base import ToolParams, ToolResult
from zuychin.tools.registry import registry

logger = logging.getLogger(__name__)


class CurrentTimeParams(ToolParams):
    timezone: str | None = Field(
        default=None,
        description="IANA timezone name, e.g. 'Australia/Sydney' or 'America/New_York'",
    )


@registry.tool(
    name="get_current_time",
    description="Get the current date, time, and day of the week in a timezone.",
    category="utility",
    params_model=CurrentTimeParams,
)
async def get_current_time(timezone: str | None = None) -> ToolResult:
    tz_name = timezone or settings.default_timezone
    try:
        tz = zoneinfo.ZoneInfo(tz_name)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone requested: %s", tz_name)
        return ToolResult(error=f"Could not get the time for timezone '{tz_name}'.")

    now = datetime.now(tz)
    return ToolResult(
        data={
            "datetime": now.isoformat(),
            "date": now.strftime("%Y-%m-%d"),
            "time": now.strftime("%H:%M:%S"),
            "day_of_week": now.strftime("%A"),
            "formatted": now.strftime("%A, %B %d, %Y %I:%M %p %Z"),
            "timezone": tz_name,
        }
    )
