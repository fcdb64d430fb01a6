"""
portal.api.routes.feature_settings — Feature switch endpoints
==============================================================

Reads are public so the client can gate navigation before login; writes
require an admin token and count against the admin rate limit.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field, StrictBool

from portal.api.deps import actor_id, default_disabled_message, get_engine
from portal.api.rate_limit import rate_limited_admin
from portal.services import feature_service

router = APIRouter(prefix="/feature-settings", tags=["feature-settings"])


class FeatureSettingUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_enabled: StrictBool = Field(alias="isEnabled")
    show_in_header: StrictBool | None = Field(default=None, alias="showInHeader")
    disabled_message: str | None = Field(default=None, alias="disabledMessage", max_length=500)


@router.get("")
def list_feature_settings(engine=Depends(get_engine)):
    return feature_service.list_settings(engine)


@router.get("/navigation")
def get_navigation(engine=Depends(get_engine)):
    """Header entries for every known feature."""
    return {"items": [item.to_dict() for item in feature_service.navigation(engine)]}


@router.get("/check/{feature_name}")
def check_feature(feature_name: str, engine=Depends(get_engine)):
    status = feature_service.check_feature(
        engine, feature_name, default_message=default_disabled_message(),
    )
    return status.to_dict()


@router.put("/{feature_name}")
def update_feature_setting(
    feature_name: str,
    body: FeatureSettingUpdate,
    admin: dict = Depends(rate_limited_admin),
    engine=Depends(get_engine),
):
    try:
        setting = feature_service.upsert_feature(
            engine,
            feature_name,
            is_enabled=body.is_enabled,
            show_in_header=body.show_in_header,
            disabled_message=body.disabled_message,
            actor_id=actor_id(admin),
            default_message=default_disabled_message(),
        )
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    return {"success": True, "setting": setting}
