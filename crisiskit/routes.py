"""
HTTP routes for the CrisisKit API.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Response
from fastapi.responses import PlainTextResponse

from crisiskit.dependencies import get_incidents_repo, get_webhook_service
from crisiskit.errors import NotFoundError
from crisiskit.export import responses_to_csv
from crisiskit.models import IncidentResponse, WebhookConfig
from crisiskit.presets import REGION_PRESETS, get_preset
from crisiskit.repo import IncidentsRepo
from crisiskit.schemas import (
    CreateIncidentRequest,
    EnableWebhookRequest,
    IncidentResponseSchema,
    IncidentSchema,
    RegionPresetsResponse,
    RegionSchema,
    SubmitResponseRequest,
    UpdateResponseRequest,
    WebhookConfigSchema,
    WebhookResultSchema,
)
from crisiskit.webhook import APPS_SCRIPT_CODE, GoogleSheetsWebhookService

logger = logging.getLogger(__name__)

router = APIRouter()


def relay_response(
    webhook: GoogleSheetsWebhookService, incident_id: str, response: IncidentResponse
) -> None:
    """Push a stored response to the incident's webhook; failures are only logged."""
    result = webhook.send_to_webhook(incident_id, response)
    if result.success:
        logger.info("Relayed response %s to webhook", response.id)
    else:
        logger.debug("Webhook relay skipped for %s: %s", response.id, result.error)


@router.get("/incidents", response_model=list[IncidentSchema])
def list_incidents(repo: IncidentsRepo = Depends(get_incidents_repo)):
    return [IncidentSchema.from_record(i) for i in repo.get_incidents()]


@router.post("/incidents", response_model=IncidentSchema, status_code=201)
def create_incident(
    payload: CreateIncidentRequest,
    repo: IncidentsRepo = Depends(get_incidents_repo),
):
    incident = repo.create_incident(
        title=payload.title,
        description=payload.description,
        regions=payload.to_regions(),
    )
    return IncidentSchema.from_record(incident)


@router.get("/incidents/{incident_id}", response_model=IncidentSchema)
def get_incident(incident_id: str, repo: IncidentsRepo = Depends(get_incidents_repo)):
    incident = repo.get_incident_by_id(incident_id)
    if not incident:
        raise HTTPException(status_code=404, detail="Incident not found")
    return IncidentSchema.from_record(incident)


@router.get(
    "/incidents/{incident_id}/responses",
    response_model=list[IncidentResponseSchema],
)
def list_responses(incident_id: str, repo: IncidentsRepo = Depends(get_incidents_repo)):
    return [IncidentResponseSchema.from_record(r) for r in repo.get_responses(incident_id)]


@router.post(
    "/incidents/{incident_id}/responses",
    response_model=IncidentResponseSchema,
    status_code=201,
)
def submit_response(
    incident_id: str,
    payload: SubmitResponseRequest,
    background_tasks: BackgroundTasks,
    repo: IncidentsRepo = Depends(get_incidents_repo),
    webhook: GoogleSheetsWebhookService = Depends(get_webhook_service),
):
    """
    Store a response, then relay it to the incident's webhook after the
    reply is sent. A relay failure never affects the stored response.
    """
    record = repo.submit_response(payload.to_new_response(incident_id))
    background_tasks.add_task(relay_response, webhook, incident_id, record)
    return IncidentResponseSchema.from_record(record)


@router.put("/responses/{response_id}", status_code=204)
def update_response(
    response_id: str,
    payload: UpdateResponseRequest,
    repo: IncidentsRepo = Depends(get_incidents_repo),
):
    if payload.id is not None and payload.id != response_id:
        raise HTTPException(status_code=400, detail="Response id does not match path")
    try:
        repo.update_response(payload.to_record_for(response_id))
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Response not found")
    return Response(status_code=204)


@router.get("/incidents/{incident_id}/responses/export")
def export_responses(incident_id: str, repo: IncidentsRepo = Depends(get_incidents_repo)):
    body = responses_to_csv(repo.get_responses(incident_id))
    return Response(
        content=body,
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="responses-{incident_id}.csv"'
        },
    )


@router.get("/incidents/{incident_id}/webhook", response_model=WebhookConfigSchema)
def get_webhook_config(
    incident_id: str,
    webhook: GoogleSheetsWebhookService = Depends(get_webhook_service),
):
    config = webhook.get_config(incident_id)
    if config is None:
        raise HTTPException(status_code=404, detail="Webhook not configured")
    return WebhookConfigSchema.from_config(config)


@router.put("/incidents/{incident_id}/webhook", response_model=WebhookConfigSchema)
def enable_webhook(
    incident_id: str,
    payload: EnableWebhookRequest,
    webhook: GoogleSheetsWebhookService = Depends(get_webhook_service),
):
    config = WebhookConfig(webhook_url=payload.webhookUrl, enabled=True)
    webhook.save_config(incident_id, config)
    logger.info("Enabled webhook sync for incident %s", incident_id)
    return WebhookConfigSchema.from_config(config)


@router.delete("/incidents/{incident_id}/webhook", response_model=WebhookConfigSchema)
def disable_webhook(
    incident_id: str,
    webhook: GoogleSheetsWebhookService = Depends(get_webhook_service),
):
    config = WebhookConfig(webhook_url="", enabled=False)
    webhook.save_config(incident_id, config)
    logger.info("Disabled webhook sync for incident %s", incident_id)
    return WebhookConfigSchema.from_config(config)


@router.post("/webhook/test", response_model=WebhookResultSchema)
def test_webhook(
    payload: EnableWebhookRequest,
    webhook: GoogleSheetsWebhookService = Depends(get_webhook_service),
):
    result = webhook.test_webhook(payload.webhookUrl)
    return WebhookResultSchema(**result.as_dict())


@router.get("/webhook/script", response_class=PlainTextResponse)
def webhook_script():
    return APPS_SCRIPT_CODE


@router.get("/region-presets", response_model=RegionPresetsResponse)
def region_presets():
    return RegionPresetsResponse(
        presets={
            name: [RegionSchema.from_region(r) for r in get_preset(name)]
            for name in REGION_PRESETS
        }
    )
