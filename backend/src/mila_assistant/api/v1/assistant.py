import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from mila_assistant.core.response_utils import create_error_response, create_success_response, ResponseTimer
from mila_assistant.schemas import AssistantQueryInput, PreferenceInput, StandardResponse
from mila_assistant.services.assistant_service import AssistantService

logger = logging.getLogger(__name__)
router = APIRouter()


def get_assistant_service(request: Request) -> AssistantService:
    """The service instance created by the application lifespan."""
    return request.app.state.assistant


@router.post("/query", response_model=StandardResponse)
async def process_query(data: AssistantQueryInput, service: AssistantService = Depends(get_assistant_service)):
    """
    Answer a billing question.

    Always answers: remote failures fall back to built-in knowledge and
    memory problems only drop personalization.
    """
    with ResponseTimer() as timer:
        result = await service.process_query(data)
        return create_success_response(
            data=result,
            status_code=200,
            execution_time=timer.get_execution_time()
        )


@router.get("/health", response_model=StandardResponse)
async def assistant_health(service: AssistantService = Depends(get_assistant_service)):
    """Health of the assistant's collaborators."""
    with ResponseTimer() as timer:
        health_data = await service.health()
        health_data["status"] = "healthy"
        return create_success_response(
            data=health_data,
            status_code=200,
            execution_time=timer.get_execution_time()
        )


@router.get("/usage", response_model=StandardResponse)
async def remote_usage(service: AssistantService = Depends(get_assistant_service)):
    """Remote call usage in the current rate window."""
    with ResponseTimer() as timer:
        return create_success_response(
            data=service.gateway.usage_stats(),
            status_code=200,
            execution_time=timer.get_execution_time()
        )


@router.get("/suggestions", response_model=StandardResponse)
async def quick_suggestions(
    form_type: Optional[str] = Query(None, max_length=100, description="Active form"),
    service: AssistantService = Depends(get_assistant_service),
):
    with ResponseTimer() as timer:
        return create_success_response(
            data={"form_type": form_type, "suggestions": list(service.knowledge.suggestions_for(form_type))},
            status_code=200,
            execution_time=timer.get_execution_time()
        )


@router.get("/field-help", response_model=StandardResponse)
async def field_help(
    form_type: str = Query(..., max_length=100),
    field: str = Query(..., max_length=100),
    service: AssistantService = Depends(get_assistant_service),
):
    with ResponseTimer() as timer:
        guidance = service.knowledge.field_help(form_type, field)
        if guidance is None:
            return create_error_response(
                message=f"No guidance for {form_type}.{field}",
                status_code=404,
                execution_time=timer.get_execution_time()
            )
        return create_success_response(
            data={"form_type": form_type, "field": field, "guidance": guidance},
            status_code=200,
            execution_time=timer.get_execution_time()
        )


@router.put("/preferences/{user_id}", response_model=StandardResponse)
async def store_preference(
    user_id: str,
    data: PreferenceInput,
    service: AssistantService = Depends(get_assistant_service),
):
    """Store a preference such as response_style=detailed."""
    with ResponseTimer() as timer:
        entry = await service.memory.store_user_preference(user_id, data.key, data.value, data.importance)
        if entry is None:
            return create_error_response(
                message="Memory store unavailable, preference not saved",
                status_code=503,
                execution_time=timer.get_execution_time()
            )
        return create_success_response(
            data=entry.model_dump(),
            status_code=200,
            execution_time=timer.get_execution_time()
        )


@router.get("/memory/stats", response_model=StandardResponse)
async def memory_stats(service: AssistantService = Depends(get_assistant_service)):
    with ResponseTimer() as timer:
        stats = await service.memory.get_memory_stats()
        return create_success_response(
            data=stats.model_dump() if stats else None,
            status_code=200,
            execution_time=timer.get_execution_time()
        )


@router.get("/insights", response_model=StandardResponse)
async def interaction_insights(
    user_id: Optional[str] = Query(None, max_length=255),
    form_type: Optional[str] = Query(None, max_length=100),
    service: AssistantService = Depends(get_assistant_service),
):
    """Learning hints derived from recent successful questions."""
    with ResponseTimer() as timer:
        insights = service.interaction_log.insights()
        insights["hints"] = service.interaction_log.top_tokens(
            user_id=user_id,
            form_type=form_type,
            limit=service.config.routing.learning_hint_limit,
        )
        return create_success_response(
            data=insights,
            status_code=200,
            execution_time=timer.get_execution_time()
        )
