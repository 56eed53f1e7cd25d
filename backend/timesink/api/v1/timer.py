"""
Router FastAPI per il Timer
Progetto: Timesink (Fatturazione Freelance)
"""

import logging

from fastapi import APIRouter, status

from timesink.core.deps import TimerServiceDep
from timesink.models import TimerState
from timesink.schemas.entry import EntryRead
from timesink.schemas.timer import TimerRead, TimerStart
from timesink.services.timer_service import TimerService

# Logger per questo modulo
logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/timer",
    tags=["Timer"],
)


async def _timer_status(service: TimerService) -> TimerRead:
    timer = await service.get_active_timer()
    if timer is None:
        return TimerRead(state=TimerState.IDLE)

    elapsed = await service.elapsed_duration()
    return TimerRead(
        state=timer.state,
        client_id=timer.client_id,
        description=timer.description,
        start_time=timer.start_time,
        paused_at=timer.paused_at,
        total_paused_seconds=timer.total_paused_seconds,
        elapsed_seconds=max(int(elapsed.total_seconds()), 0),
        accrued_value=await service.accrued_value(),
    )


@router.get("/", name="timer_stato", summary="Stato del timer", response_model=TimerRead)
async def get_timer(service: TimerServiceDep) -> TimerRead:
    return await _timer_status(service)


@router.post(
    "/start",
    name="timer_avvia",
    summary="Avvia timer",
    response_model=TimerRead,
    status_code=status.HTTP_201_CREATED,
)
async def start_timer(data: TimerStart, service: TimerServiceDep) -> TimerRead:
    """
    Raises:
        AlreadyRunningError (409): un timer è già attivo
        ClientNotFoundError (404): cliente inesistente
    """
    await service.start(data.client_id, data.description)
    return await _timer_status(service)


@router.post("/pause", name="timer_pausa", summary="Metti in pausa", response_model=TimerRead)
async def pause_timer(service: TimerServiceDep) -> TimerRead:
    await service.pause()
    return await _timer_status(service)


@router.post("/resume", name="timer_riprendi", summary="Riprendi", response_model=TimerRead)
async def resume_timer(service: TimerServiceDep) -> TimerRead:
    await service.resume()
    return await _timer_status(service)


@router.post(
    "/stop",
    name="timer_ferma",
    summary="Ferma e registra la voce",
    response_model=EntryRead,
)
async def stop_timer(service: TimerServiceDep) -> EntryRead:
    entry = await service.stop()
    return EntryRead.model_validate(entry)


@router.post(
    "/discard",
    name="timer_annulla",
    summary="Annulla senza registrare",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def discard_timer(service: TimerServiceDep) -> None:
    await service.discard()
