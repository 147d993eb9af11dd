"""
Logfire observability configuration for CreatorsCook.

Traces the ingestion pipeline nodes, completion-provider calls and
(through the Pydantic AI integration) the prompts and responses sent to
the LLM.

Usage:
    from creatorscook.core.observability import setup_logfire
    setup_logfire()

    import logfire
    with logfire.span("aggregate_reviews", review_count=len(reviews)):
        ...

Environment Variables:
    LOGFIRE_TOKEN: Logfire write token (spans stay local without it)
    LOGFIRE_ENVIRONMENT: Environment name (development, staging, production)
"""

import os
import logging
from typing import Optional

import logfire

logger = logging.getLogger(__name__)

# None until setup_logfire() has run; afterwards whether spans are exported
_logfire_exporting: Optional[bool] = None


def setup_logfire(
    environment: Optional[str] = None,
    service_name: str = "creatorscook"
) -> bool:
    """
    Configure Logfire for observability. Only the first call configures.

    Args:
        environment: Environment name (or LOGFIRE_ENVIRONMENT env var)
        service_name: Service name for tracing

    Returns:
        True if spans are exported to Logfire, False if they stay local
    """
    global _logfire_exporting

    if _logfire_exporting is not None:
        logger.debug("Logfire already configured")
        return _logfire_exporting

    token = os.environ.get("LOGFIRE_TOKEN")
    if not token:
        logger.info("LOGFIRE_TOKEN not set, spans will not be exported")
        logfire.configure(send_to_logfire=False, console=False)
        _logfire_exporting = False
        return False

    env = environment or os.environ.get("LOGFIRE_ENVIRONMENT", "development")

    try:
        logfire.configure(
            token=token,
            service_name=service_name,
            environment=env,
            send_to_logfire=True,
        )
        logfire.instrument_pydantic()
        logfire.instrument_pydantic_ai()
    except Exception as e:
        logger.error(f"Failed to configure Logfire: {e}")
        return False

    _logfire_exporting = True
    logger.info(f"Logfire configured: service={service_name}, environment={env}")
    return True


def reset_logfire():
    """Forget the configuration so the next setup_logfire() runs again."""
    global _logfire_exporting
    _logfire_exporting = None
