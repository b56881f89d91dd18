from __future__ import annotations

import logging
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import NotFoundError
from ..db.database import get_session
from ..reporting.queries import REPORT_QUERIES
from ..schemas import ReportSearchParam
from ..services.csv_export import stream_csv
from .deps import reporting_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["reports"])

def _query_class(kind: str):
    cls = REPORT_QUERIES.get(kind)
    if cls is None:
        raise NotFoundError(f"Unknown report: {kind}")
    return cls

@router.get("")
async def list_reports(_=Depends(reporting_user)):
    return {"reports": sorted(REPORT_QUERIES)}

@router.post("/{kind}")
async def run_report(kind: str, param: ReportSearchParam, _=Depends(reporting_user),
                     session: AsyncSession = Depends(get_session)):
    query = _query_class(kind)(param)
    items = await query.call(session)
    total = await query.count(session)
    return {"items": [i.model_dump() for i in items], "total": total}

@router.post("/{kind}/csv")
async def download_csv(kind: str, param: ReportSearchParam, _=Depends(reporting_user),
                       session: AsyncSession = Depends(get_session)):
    cls = _query_class(kind)
    items = await cls(param).call(session)
    logger.info("CSV export of %s report: %d rows", kind, len(items))
    return stream_csv(
        (i.model_dump(mode="json") for i in items),
        fieldnames=list(cls.dto.model_fields),
        filename=f"{kind}.csv",
    )
