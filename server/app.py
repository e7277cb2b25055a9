"""FastAPI server for vocadrill."""

import logging
import os
from typing import Optional

from fastapi import BackgroundTasks, FastAPI, HTTPException
from pydantic import BaseModel

logger = logging.getLogger(__name__)

from core.interfaces import Storage
from core.models import Trainer
from core.vocabulary import Catalog
from core.config import (
    LEVELS, MODES, MODE_FLASHCARD, GUEST_PREFIX, GUEST_SEPARATORS,
    EFFECT_PERSIST, EFFECT_SCHEDULE_ADVANCE
)

from server.file_storage import FileStorage
from server.postgres_storage import PostgresStorage


# Pydantic models for API
class SessionRequest(BaseModel):
    user_id: str = "default"
    language: Optional[str] = None
    level: Optional[str] = None
    category: Optional[str] = None
    mode: Optional[str] = None


class UserRequest(BaseModel):
    user_id: str = "default"


class AnswerRequest(BaseModel):
    answer: str
    user_id: str = "default"


class ChoiceRequest(BaseModel):
    index: int
    user_id: str = "default"


class AdvanceRequest(BaseModel):
    token: int
    user_id: str = "default"


class RepeatRequest(BaseModel):
    failed_only: bool = False
    user_id: str = "default"


class QuestionResponse(BaseModel):
    complete: bool
    mode: str
    language: str
    level: str
    category: str
    session_key: str
    term: Optional[str]
    definition: Optional[str]
    translation: Optional[str]  # Only once the card is settled
    attempt: int
    feedback: Optional[str]
    motivation: Optional[str]
    options: list[str]
    selected_index: Optional[int]
    outcome_status: str
    correct_index: Optional[int]
    remaining: int
    streak: int
    answered_count: int
    wrong_count: int


class ActionResponse(BaseModel):
    question: QuestionResponse
    correct: Optional[bool] = None
    advance_token: Optional[int] = None      # Pass back to /api/advance
    advance_after_ms: Optional[int] = None   # ... after this delay
    advanced: Optional[bool] = None
    revealed: Optional[dict] = None


class StatusResponse(BaseModel):
    language: str
    level: str
    category: str
    mode: str
    streak: int
    answered_count: int
    wrong_count: int
    hard_words_count: int
    mastered_count: int
    total_level_words: int
    level_progress: float
    level_stats: list[dict]  # [{level, total, mastered, pct}]
    flashcard: dict


# Global state (in production, use proper DI)
storage: Storage = None
guest_storage: FileStorage = None  # Guests persist locally only
catalog: Catalog = None
motivations: list[str] = []
trainers: dict[str, Trainer] = {}


def is_guest(user_id: str) -> bool:
    """'guest', or 'guest-<id>' / 'guest_<id>'. 'guesthouse' is a regular user."""
    if user_id == GUEST_PREFIX:
        return True
    return any(user_id.startswith(GUEST_PREFIX + sep) for sep in GUEST_SEPARATORS)


def storage_for(user_id: str) -> Storage:
    return guest_storage if is_guest(user_id) else storage


def write_event(target: Storage, event: str, user_id: str, session_key: str | None, data: dict) -> None:
    """Write an event row. Failures are logged; grading never depends on it."""
    try:
        target.log_event(event, user_id, session_key, **data)
    except Exception as e:
        logger.error(f"Failed to log event {event} for {user_id}: {type(e).__name__}: {e}")


def log_event(background_tasks: BackgroundTasks, event: str, user_id: str, **data) -> None:
    """Queue an event for the database, after the response is sent."""
    target = storage_for(user_id)
    if target and hasattr(target, 'log_event'):
        trainer = trainers.get(user_id)
        session_key = str(trainer.session_key) if trainer else None
        background_tasks.add_task(write_event, target, event, user_id, session_key, data)


def get_trainer(user_id: str = "default") -> Trainer:
    """Get or create the trainer for a user, loading saved state first."""
    if user_id not in trainers:
        trainer = Trainer(catalog, motivations=motivations)
        try:
            state = storage_for(user_id).load_state(user_id)
        except Exception as e:
            logger.error(f"Failed to load state for {user_id}: {e}")
            state = None
        if state:
            trainer.load_state(state)
            logger.info(f"Restored {len(trainer.mastery)} mastery records for {user_id}")
        trainers[user_id] = trainer
    return trainers[user_id]


def get_started_trainer(user_id: str) -> Trainer:
    trainer = get_trainer(user_id)
    if not trainer.started:
        trainer.start_session()
    return trainer


def write_state(user_id: str, state: dict) -> None:
    """Persist a snapshot. Failures are logged; memory stays authoritative."""
    try:
        storage_for(user_id).save_state(state, user_id)
    except Exception as e:
        logger.error(f"Failed to save state for {user_id}: {type(e).__name__}: {e}")


def apply_effects(user_id: str, trainer: Trainer, result: dict,
                  background_tasks: BackgroundTasks) -> dict:
    """Carry out trainer effects. Returns advance fields for the response."""
    advance = {}
    for effect in result.get('effects', []):
        if effect['type'] == EFFECT_PERSIST:
            state = trainer.to_dict(include_counters=not is_guest(user_id))
            background_tasks.add_task(write_state, user_id, state)
        elif effect['type'] == EFFECT_SCHEDULE_ADVANCE:
            advance = {
                'advance_token': effect['token'],
                'advance_after_ms': effect['delay_ms']
            }
    return advance


def question_response(trainer: Trainer) -> QuestionResponse:
    return QuestionResponse(**trainer.question_view())


def load_catalog(catalog_dir: str = None) -> Catalog:
    """Catalog directory first, then seeded storage, then the built-in sample."""
    if catalog_dir:
        loaded = Catalog.load_directory(catalog_dir)
        if len(loaded):
            return loaded
        logger.warning(f"No catalog items found in {catalog_dir}")
    loaded = Catalog.from_storage(storage)
    if len(loaded):
        return loaded
    logger.info("Using built-in seed vocabulary")
    return Catalog.seed()


app = FastAPI(title="vocadrill API", description="Vocabulary drilling with fuzzy answers and Leitner boxes")


@app.on_event("startup")
async def startup():
    """Initialize storage and the catalog on startup."""
    global storage, guest_storage, catalog, motivations

    # Use PostgreSQL by default, set VOCADRILL_STORAGE=file to use file storage
    storage_type = os.environ.get('VOCADRILL_STORAGE', 'postgres')
    state_dir = os.environ.get('VOCADRILL_STATE_DIR')
    if storage_type == 'file':
        storage = FileStorage(state_dir=state_dir)
        logger.info("Using file storage")
    else:
        storage = PostgresStorage()
        logger.info("Using PostgreSQL storage")
    guest_storage = FileStorage(state_dir=os.environ.get('VOCADRILL_GUEST_DIR') or state_dir)

    try:
        config = storage.load_config()
    except (FileNotFoundError, ValueError) as e:
        logger.info(f"No config file loaded: {e}")
        config = {}

    motivations = [m for m in config.get('motivations', []) if isinstance(m, str)]
    catalog = load_catalog(os.environ.get('VOCADRILL_CATALOG_DIR') or config.get('catalog_dir'))
    trainers.clear()
    logger.info(f"Catalog ready: {len(catalog)} items in {catalog.languages()}")


@app.get("/")
async def root():
    """Health check."""
    return {"service": "vocadrill", "status": "ok"}


@app.get("/api/languages")
async def get_languages():
    return {"languages": catalog.languages()}


@app.get("/api/categories")
async def get_categories(language: str = "en"):
    """Categories of a language (the 'all' sentinel first) and the levels."""
    return {
        "language": language,
        "categories": catalog.categories(language),
        "levels": LEVELS,
        "modes": MODES
    }


@app.post("/api/session", response_model=ActionResponse)
async def start_session(request: SessionRequest, background_tasks: BackgroundTasks):
    """Set language, level, category and/or mode, then select a card."""
    trainer = get_trainer(request.user_id)
    try:
        trainer.start_session(
            language=request.language,
            level=request.level,
            category=request.category,
            mode=request.mode
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    log_event(background_tasks, 'session.start', request.user_id, mode=trainer.mode)
    return ActionResponse(question=question_response(trainer))


@app.get("/api/question", response_model=QuestionResponse)
async def get_question(user_id: str = "default"):
    """Current card; starts a default session if none is running."""
    return question_response(get_started_trainer(user_id))


@app.post("/api/check", response_model=ActionResponse)
async def check_answer(request: AnswerRequest, background_tasks: BackgroundTasks):
    """Grade a written answer (write and hard modes)."""
    trainer = get_started_trainer(request.user_id)
    if trainer.mode == MODE_FLASHCARD:
        raise HTTPException(status_code=400, detail="Use /api/choice in flashcard mode")

    term = trainer.current.term if trainer.current else None
    result = trainer.check(request.answer)
    if result['correct'] is not None:
        log_event(background_tasks, 'answer.check', request.user_id, term=term, correct=result['correct'],
                  feedback=result['feedback'])
    advance = apply_effects(request.user_id, trainer, result, background_tasks)
    return ActionResponse(question=question_response(trainer), correct=result['correct'], **advance)


@app.post("/api/reveal", response_model=ActionResponse)
async def reveal_and_next(request: UserRequest):
    """Show the answer of the current card and move to the next one."""
    trainer = get_started_trainer(request.user_id)
    result = trainer.reveal_and_next()
    return ActionResponse(question=question_response(trainer), revealed=result['revealed'])


@app.post("/api/choice", response_model=ActionResponse)
async def choose_option(request: ChoiceRequest, background_tasks: BackgroundTasks):
    """Grade a multiple-choice answer (flashcard mode)."""
    trainer = get_started_trainer(request.user_id)
    if trainer.mode != MODE_FLASHCARD:
        raise HTTPException(status_code=400, detail="Multiple choice is only available in flashcard mode")
    if trainer.current is None:
        return ActionResponse(question=question_response(trainer))

    term = trainer.current.term
    try:
        result = trainer.choose(request.index)
    except IndexError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if result['correct'] is not None:
        log_event(background_tasks, 'answer.choice', request.user_id, term=term, correct=result['correct'])
    advance = apply_effects(request.user_id, trainer, result, background_tasks)
    return ActionResponse(question=question_response(trainer), correct=result['correct'], **advance)


@app.post("/api/advance", response_model=ActionResponse)
async def advance(request: AdvanceRequest):
    """Run a scheduled advance. Stale tokens leave the current card in place."""
    trainer = get_started_trainer(request.user_id)
    advanced = trainer.advance(request.token)
    return ActionResponse(question=question_response(trainer), advanced=advanced)


@app.post("/api/flashcard/repeat", response_model=ActionResponse)
async def repeat_flashcards(request: RepeatRequest, background_tasks: BackgroundTasks):
    """Restart the flashcard session with all words or only the failed ones."""
    trainer = get_started_trainer(request.user_id)
    if request.failed_only:
        trainer.repeat_failed_flashcards()
    else:
        trainer.repeat_all_flashcards()
    log_event(background_tasks, 'flashcard.repeat', request.user_id, failed_only=request.failed_only)
    return ActionResponse(question=question_response(trainer))


@app.post("/api/session/reset-write", response_model=ActionResponse)
async def reset_write_session(request: UserRequest):
    """Bring back every word of the current write session."""
    trainer = get_started_trainer(request.user_id)
    trainer.reset_write_session()
    return ActionResponse(question=question_response(trainer))


@app.get("/api/status", response_model=StatusResponse)
async def get_status(user_id: str = "default"):
    """Counters, level progress and flashcard stats."""
    return StatusResponse(**get_trainer(user_id).status())


@app.get("/api/hard-words")
async def get_hard_words(user_id: str = "default"):
    """Words with recorded failures, most failed first."""
    trainer = get_trainer(user_id)
    counts = trainer.hard_words.to_dict()
    words = [
        {'term': term, 'count': count, 'box': trainer.mastery.box(term)}
        for term, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
        if count > 0
    ]
    return {"total": len(words), "words": words}


@app.get("/api/events/recent")
def get_recent_events(user_id: str, event_type: str = None, limit: int = 50):
    """Get recent events for a user. Sync so the database read runs in the thread pool."""
    target = storage_for(user_id)
    if not hasattr(target, 'get_user_events'):
        return {"error": "Event logging not available with current storage"}
    events = target.get_user_events(user_id, event_type, limit)
    for event in events:
        if 'timestamp' in event and hasattr(event['timestamp'], 'isoformat'):
            event['timestamp'] = event['timestamp'].isoformat()
    return {"events": events}


def create_app():
    """Factory function for creating the app (useful for testing)."""
    return app
