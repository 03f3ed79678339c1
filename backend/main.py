"""Main entry point for the Muscat Airport assistant API."""
import logging
import uuid

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from config import (
    CORS_ORIGINS,
    KNOWLEDGE_REFRESH_SECONDS,
    LOG_FORMAT,
    LOG_LEVEL,
    PORT,
    load_content_sources,
)
from logger import setup_logging
from models.api import ChatRequest, ChatResponse, SessionResponse, SourceSchema
from models.content import SourceConfig
from services.answer_synthesizer import AnswerSynthesizer
from services.content_acquisition import ContentAcquisitionService
from services.context_store import ContextStore
from services.intent_classifier import IntentClassifier
from services.knowledge_base import KnowledgeBase
from services.knowledge_matcher import KnowledgeMatcher
from services.page_fetcher import PageFetcher
from services.query_engine import QueryEngine
from services.query_logger import QueryLogger
from services.response_assembler import ResponseAssembler
from services.supabase_store import create_stores

# Initialize logging
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Muscat Airport Assistant",
    description="Query understanding and knowledge retrieval for airport services",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize services (will be done on startup)
query_engine: QueryEngine = None
page_fetcher: PageFetcher = None
query_logger: QueryLogger = None


@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    global query_engine, page_fetcher, query_logger

    setup_logging(LOG_LEVEL, LOG_FORMAT)
    logger.info("Initializing Muscat Airport assistant services...")

    try:
        stores = create_stores()

        sources = [SourceConfig.from_dict(s) for s in load_content_sources()]
        page_fetcher = PageFetcher()
        acquisition = ContentAcquisitionService(sources, page_fetcher, stores.cache)
        logger.info(f"Initialized ContentAcquisitionService with {len(sources)} sources")

        query_logger = QueryLogger()

        query_engine = QueryEngine(
            classifier=IntentClassifier(),
            context_store=ContextStore(history_provider=stores.history),
            knowledge_base=KnowledgeBase(stores.knowledge, refresh_seconds=KNOWLEDGE_REFRESH_SECONDS),
            matcher=KnowledgeMatcher(),
            acquisition=acquisition,
            synthesizer=AnswerSynthesizer(),
            assembler=ResponseAssembler(),
            query_logger=query_logger,
        )
        logger.info("All services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise


@app.on_event("shutdown")
async def shutdown_event():
    """Release network and file handles."""
    if page_fetcher is not None:
        await page_fetcher.aclose()
    if query_logger is not None:
        query_logger.close()


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "message": "Muscat Airport Assistant API"}


@app.get("/health")
async def health():
    """Detailed health check."""
    return {
        "status": "healthy" if query_engine is not None else "starting",
        "service": "muscat-airport-assistant",
        "version": "1.0.0"
    }


@app.post("/chat/session", response_model=SessionResponse, response_model_by_alias=True)
async def create_session() -> SessionResponse:
    """Issue a new chat session identifier."""
    session_id = f"sess_{uuid.uuid4().hex[:12]}"
    logger.info(f"Created session {session_id}", extra={"session_id": session_id})
    return SessionResponse(session_id=session_id)


@app.post("/chat/send", response_model=ChatResponse, response_model_by_alias=True)
async def send_message(request: ChatRequest) -> ChatResponse:
    """
    Answer one chat message.

    Args:
        request: ChatRequest with message and sessionId

    Returns:
        ChatResponse with the answer, sources, intent and suggested actions

    Raises:
        HTTPException: 400 for an empty message or missing session id, 500 when
            the engine is not initialized
    """
    if not request.message or not request.message.strip():
        raise HTTPException(status_code=400, detail="Message is required and cannot be empty")
    if not request.session_id:
        raise HTTPException(status_code=400, detail="Session ID is required")
    if query_engine is None:
        logger.error("Query engine not initialized")
        raise HTTPException(status_code=500, detail="Internal server error")

    logger.info(f"Processing message: {request.message[:100]}", extra={"session_id": request.session_id})
    result = await query_engine.process_query(request.message.strip(), request.session_id)

    return ChatResponse(
        response=result.content,
        confidence=result.confidence,
        sources=[SourceSchema(title=s.title, url=s.url, relevance=s.relevance) for s in result.sources],
        intent=result.intent,
        requires_human=result.requires_human,
        suggested_actions=result.suggested_actions,
        response_time=result.response_time_ms,
        session_id=request.session_id,
    )


if __name__ == "__main__":
    import uvicorn
    logger.info(f"Starting Muscat Airport Assistant API on port {PORT}")
    uvicorn.run(app, host="0.0.0.0", port=PORT)
