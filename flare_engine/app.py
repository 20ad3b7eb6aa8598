"""
FastAPI application for IBD flare risk assessment.

Stateless service: every request carries the journal window it should be
scored on. The only process-wide state is the set of engine components,
built once at startup, and the learned model, which is loaded in a worker
thread without blocking requests (the rule engine answers until it is ready).
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from flare_engine.classifier import RiskClassifier
from flare_engine.config import settings
from flare_engine.constants import RULE_BASED_CONFIDENCE
from flare_engine.features import FeatureExtractor
from flare_engine.food_matching import KEYWORD_TABLE_VERSION, KeywordFoodMatcher
from flare_engine.micronutrients import MicronutrientCalculator
from flare_engine.ml_model import LearnedModelScorer
from flare_engine.predictor import FlarePredictor
from flare_engine.recommendations import RecommendationEngine
from flare_engine.schemas import (
    DailyIntakeRequest,
    DailyIntakeResponse,
    FlarePredictionOutput,
    FoodMatchResult,
    HealthResponse,
    MicronutrientRequest,
    ModelInfoResponse,
    PredictRequest,
)
from flare_engine.scoring import RiskScorer, RuleBasedScorer

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


class AppState:
    """Application state container."""
    predictor: Optional[FlarePredictor] = None
    calculator: Optional[MicronutrientCalculator] = None
    model_scorer: Optional[LearnedModelScorer] = None
    model_task: Optional[asyncio.Task] = None


app_state = AppState()


def build_components(state: AppState) -> None:
    """Wire the engine components once, sharing the calculator and model adapter."""
    calculator = MicronutrientCalculator()
    model_scorer = LearnedModelScorer(
        model_path=settings.model_path,
        confidence_floor=settings.model_confidence_floor,
    )
    state.calculator = calculator
    state.model_scorer = model_scorer
    state.predictor = FlarePredictor(
        extractor=FeatureExtractor(food_matcher=KeywordFoodMatcher(), calculator=calculator),
        scorer=RiskScorer(
            rule_scorer=RuleBasedScorer(weights=settings.rule_weights),
            model_scorer=model_scorer,
        ),
        classifier=RiskClassifier(),
        recommender=RecommendationEngine(),
        next_prediction_hours=settings.next_prediction_hours,
    )


def get_predictor() -> FlarePredictor:
    if app_state.predictor is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is starting up",
        )
    return app_state.predictor


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    Builds the components and schedules the model load.
    """
    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.version}")
    logger.info(f"Environment: {settings.environment}")

    build_components(app_state)

    if settings.load_model_on_startup:
        logger.info(f"Scheduling model load from {settings.model_path}")
        app_state.model_task = asyncio.create_task(asyncio.to_thread(app_state.model_scorer.load_model))
    else:
        logger.info("Model loading disabled, using rule-based scoring")

    yield

    # Shutdown
    if app_state.model_task is not None and not app_state.model_task.done():
        app_state.model_task.cancel()
    logger.info("Shutting down application")


# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Stateless API for IBD flare risk scoring and micronutrient tracking",
    version=settings.version,
    docs_url="/docs",
    redoc_url=None,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["POST", "GET"],
    allow_headers=["*"],
)


def model_ready() -> bool:
    return app_state.model_scorer is not None and app_state.model_scorer.is_model_ready


# API Endpoints
@app.get("/", tags=["Info"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.app_name,
        "version": settings.version,
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health", response_model=HealthResponse, tags=["Info"])
async def health_check():
    """
    Health check endpoint.

    Always returns 200. `model_ready` is False while the learned model is
    loading or when none is available (rule-based scoring is used then).
    """
    return HealthResponse(
        status="healthy",
        version=settings.version,
        model_ready=model_ready(),
    )


@app.post(
    "/predict",
    response_model=FlarePredictionOutput,
    status_code=status.HTTP_200_OK,
    tags=["Predictions"],
)
async def predict_flare(request: PredictRequest):
    """
    Assess flare risk from a window of journal entries.

    Malformed entries are skipped; an empty window yields a low-risk
    assessment built from defaults.
    """
    predictor = get_predictor()
    logger.info(f"Prediction request with {len(request.journal_entries)} journal entries")
    return predictor.predict(
        request.journal_entries,
        now=request.now,
        supplements=request.supplements,
        lifestyle=request.lifestyle,
        medication=request.medication,
    )


@app.post("/nutrition/micronutrients", response_model=FoodMatchResult, tags=["Nutrition"])
async def resolve_micronutrients(request: MicronutrientRequest):
    """
    Resolve a free-text food description to a micronutrient vector.

    The serving is parsed from the description ("2 cups of ...") unless
    given explicitly.
    """
    get_predictor()
    return app_state.calculator.resolve(request.food_description, serving=request.serving)


@app.post("/nutrition/daily", response_model=DailyIntakeResponse, tags=["Nutrition"])
async def daily_micronutrients(request: DailyIntakeRequest):
    """Aggregate daily micronutrient intake and compare it with the profile's requirements."""
    get_predictor()
    calculator = app_state.calculator
    intake = calculator.daily_intake(
        request.journal_entries,
        supplements=request.profile.supplements,
        day=request.day,
    )
    analysis = calculator.analyze(intake.total_intake, request.profile)
    return DailyIntakeResponse(intake=intake, analysis=analysis)


@app.get("/model/info", response_model=ModelInfoResponse, tags=["Model"])
async def model_info():
    """Scoring configuration and learned model availability."""
    return ModelInfoResponse(
        model_version=settings.model_version,
        model_path=settings.model_path,
        model_ready=model_ready(),
        rule_weights=settings.rule_weights,
        risk_thresholds=RiskClassifier.thresholds(),
        rule_based_confidence=RULE_BASED_CONFIDENCE,
        keyword_table_version=KEYWORD_TABLE_VERSION,
    )


# Error handlers
@app.exception_handler(ValueError)
async def value_error_handler(request, exc):
    """Handle validation errors."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": str(exc)},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc):
    """Handle unexpected errors."""
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error occurred"},
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "flare_engine.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
    )
