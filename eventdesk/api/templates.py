from __future__ import annotations

from collections import defaultdict

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eventdesk.db.session import get_db
from eventdesk.models.event import Template, TemplateFeature
from eventdesk.schemas.event import TemplateOut
from eventdesk.services.auth import MerchantSession, get_current_session

router = APIRouter(prefix="/templates", tags=["templates"])


@router.get("", response_model=list[TemplateOut])
async def list_templates(
    db: AsyncSession = Depends(get_db),
    _session: MerchantSession = Depends(get_current_session),
) -> list[TemplateOut]:
    templates = (await db.execute(select(Template).order_by(Template.id.asc()))).scalars().all()
    features = (
        await db.execute(select(TemplateFeature).order_by(TemplateFeature.id.asc()))
    ).scalars().all()

    by_template: dict[int, list[str]] = defaultdict(list)
    for feature in features:
        by_template[feature.template_id].append(feature.feature_name)

    return [
        TemplateOut(
            id=t.id,
            title=t.title,
            category=t.category,
            thumbnail=t.thumbnail,
            description=t.description,
            url=t.url,
            features=by_template.get(t.id, []),
        )
        for t in templates
    ]
