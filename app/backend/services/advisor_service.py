"""Advisor Service: settings and one-shot advisor runs for the HTTP app."""

import logging
from typing import Optional

from fastapi import HTTPException

from agents.advisor import IndexAdvisorAgent, IndexReports
from config.settings import AdvisorSettings, load_settings
from framework.errors import InvalidConfiguration
from utils.sqlserver_client import SqlServerClient

logger = logging.getLogger("index_advisor_app.advisor")

_settings: Optional[AdvisorSettings] = None


def get_settings() -> AdvisorSettings:
    """Settings come from INDEX_ADVISOR_* variables, loaded on first use."""
    global _settings
    if _settings is None:
        _settings = load_settings()
        logger.info(f"Advisor settings loaded (target_database={_settings.target_database}, "
                    f"mock_mode={_settings.mock_mode})")
    return _settings


def advisor_settings() -> AdvisorSettings:
    """FastAPI dependency: configuration problems surface as HTTP 500."""
    try:
        return get_settings()
    except InvalidConfiguration as e:
        logger.error(f"Invalid configuration: {e}")
        raise HTTPException(status_code=500, detail=f"Invalid configuration: {e}")


def get_client(settings: AdvisorSettings) -> SqlServerClient:
    return SqlServerClient(settings)


async def run_reports(settings: AdvisorSettings, database: Optional[str] = None) -> IndexReports:
    """Fresh snapshot per call; reports are never cached between requests."""
    agent = IndexAdvisorAgent(get_client(settings), settings)
    return await agent.run_index_advisor(database)
