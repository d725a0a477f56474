"""Application services - article pipeline, morning briefing and questions."""

from fxwatch.services.briefing_service import BriefingReport, BriefingService
from fxwatch.services.processing_service import ArticlePipeline, PipelineResult
from fxwatch.services.qa_service import QuestionService

__all__ = [
    "ArticlePipeline",
    "BriefingReport",
    "BriefingService",
    "PipelineResult",
    "QuestionService",
]
