"""Indexes router — advisor report views."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from agents.advisor import IndexReports
from config.settings import AdvisorSettings
from framework.errors import InvalidConfiguration, SourceUnavailable
from ..services.advisor_service import advisor_settings, run_reports

router = APIRouter(prefix="/api/indexes", tags=["indexes"])


async def _reports(settings: AdvisorSettings, database: Optional[str]) -> IndexReports:
    try:
        return await run_reports(settings, database)
    except SourceUnavailable as e:
        raise HTTPException(status_code=503, detail=f"Source unavailable: {e}")
    except InvalidConfiguration as e:
        raise HTTPException(status_code=500, detail=f"Invalid configuration: {e}")


def _view(reports: IndexReports, name: str) -> dict:
    return {
        "database_name": reports.database_name,
        "usage_stats_since": reports.usage_stats_since,
        "rows": reports.view(name),
    }


@router.get("/report")
async def full_report(database: Optional[str] = Query(None),
                      settings: AdvisorSettings = Depends(advisor_settings)):
    """All four views from one snapshot."""
    return (await _reports(settings, database)).to_dict()


@router.get("/overview")
async def overview(database: Optional[str] = Query(None),
                   settings: AdvisorSettings = Depends(advisor_settings)):
    """Every index with usage, fragmentation, and recommended action."""
    return _view(await _reports(settings, database), "overview")


@router.get("/unused")
async def unused_candidates(database: Optional[str] = Query(None),
                            settings: AdvisorSettings = Depends(advisor_settings)):
    """Indexes with writes but no reads since the last stats reset."""
    return _view(await _reports(settings, database), "unused_candidates")


@router.get("/actions")
async def action_needed(database: Optional[str] = Query(None),
                        settings: AdvisorSettings = Depends(advisor_settings)):
    """Indexes recommended for REBUILD or REORGANIZE."""
    return _view(await _reports(settings, database), "action_needed")


@router.get("/commands")
async def maintenance_commands(database: Optional[str] = Query(None),
                               settings: AdvisorSettings = Depends(advisor_settings)):
    """Generated ALTER INDEX text. Review before running; this API never executes it."""
    return _view(await _reports(settings, database), "maintenance_commands")
