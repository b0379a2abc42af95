"""
Generation service: runs the tailoring graph, renders and stores documents.

This is the single entry point for front ends. It streams progress messages,
keeps the generated documents in the session store for download and preview,
and turns aborting pipeline errors into `GenerationFailedError`.
"""

import inspect
import uuid
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import structlog

from cv_tailor.app.rendering import DocumentRenderer, MarkdownRenderer
from cv_tailor.config.pipeline import session_max_age_ms
from cv_tailor.errors import GenerationFailedError, NonFatalPersistenceError
from cv_tailor.graph.builder import build_graph
from cv_tailor.graph.state import (
    CamelModel,
    CoverLetterContent,
    CvContent,
    CvText,
    GenerationOptions,
    JobPosting,
    JobRequirements,
    PipelineStage,
    ProfileSource,
    Region,
    TailorState,
    to_wire,
)
from cv_tailor.graph.utils import build_analysis_summary, run_graph
from cv_tailor.llm.inference import InferenceClient
from cv_tailor.storage.sessions import GenerationSession, GenerationSessionStore, SessionArtifact
from cv_tailor.utils.io import sanitize_filename

logger = structlog.get_logger(__name__)

ProgressCallback = Callable[[str, PipelineStage], Union[None, Awaitable[None]]]
PersistHook = Callable[[GenerationSession], Union[None, Awaitable[None]]]

# Stage reached when a node finishes, once fact extraction has succeeded
NODE_STAGES = {
    "classify_region": PipelineStage.EXTRACTING,
    "extract_facts": PipelineStage.EXTRACTING,
    "analyze_job": PipelineStage.ANALYZING_JOB,
    "compare_skills": PipelineStage.GAP_ANALYSIS,
    "tailor_cv": PipelineStage.TAILORING,
    "validate_identity": PipelineStage.VALIDATING_IDENTITY,
    "write_cover_letter": PipelineStage.WRITING_COVER_LETTER,
}

STAGE_ORDER = list(PipelineStage)

CV_DOC_TYPES = {"cv"}
COVER_LETTER_DOC_TYPES = {"cover_letter", "coverLetter", "cover-letter"}


class GenerationResult(CamelModel):
    session_id: str
    region: Region
    cv: CvContent
    cover_letter: Optional[CoverLetterContent] = None
    files: Dict[str, Optional[str]]
    analysis_summary: Dict[str, Any]
    progress: list[str] = []
    fallbacks: list[str] = []
    stages: list[PipelineStage] = []


class _ProgressTracker:
    """Collects progress messages and advances the request stage monotonically."""

    def __init__(self, callback: Optional[ProgressCallback]):
        self.callback = callback
        self.stage = PipelineStage.IDLE
        self.stages = [PipelineStage.IDLE]
        self.messages: list[str] = []

    def advance(self, stage: PipelineStage) -> None:
        if stage == PipelineStage.FAILED or STAGE_ORDER.index(stage) > STAGE_ORDER.index(self.stage):
            self.stage = stage
            self.stages.append(stage)

    async def emit(self, message: str) -> None:
        self.messages.append(message)
        if self.callback is not None:
            outcome = self.callback(message, self.stage)
            if inspect.isawaitable(outcome):
                await outcome


class GenerationService:
    """Runs generations and serves stored documents."""

    def __init__(
        self,
        inference: InferenceClient,
        store: Optional[GenerationSessionStore] = None,
        renderer: Optional[DocumentRenderer] = None,
        persist: Optional[PersistHook] = None,
        max_age_ms: Optional[int] = None,
    ):
        self.inference = inference
        self.store = store or GenerationSessionStore()
        self.renderer = renderer or MarkdownRenderer()
        self.persist = persist
        self.max_age_ms = max_age_ms or session_max_age_ms()
        self.graph = build_graph(inference)

    async def generate(
        self,
        profile: ProfileSource,
        cv_texts: list[CvText],
        job: JobPosting,
        options: Optional[GenerationOptions] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> GenerationResult:
        """
        Generate, render and store a tailored CV and optional cover letter.

        Args:
            profile: Raw profile text
            cv_texts: Raw texts of existing CVs
            job: Target job posting
            options: Generation options (cover letter on by default)
            on_progress: Called (or awaited) with each progress message and stage

        Returns:
            GenerationResult with session id, content, filenames and analysis

        Raises:
            GenerationFailedError: Fact extraction aborted the run
        """
        session_id = uuid.uuid4().hex
        log = logger.bind(session_id=session_id)
        tracker = _ProgressTracker(on_progress)
        state = TailorState.from_inputs(profile, cv_texts, job, options)

        tracker.advance(PipelineStage.EXTRACTING)
        await tracker.emit("Extracting your actual profile data from uploaded CVs...")

        finished: list[str] = []

        async def on_update(node_name: str, update: Dict[str, Any]) -> None:
            if update.get("error"):
                return
            if node_name in NODE_STAGES:
                finished.append(node_name)
            # the stage stays at EXTRACTING until the facts are verified
            if "extract_facts" in finished:
                for stage in sorted({NODE_STAGES[n] for n in finished}, key=STAGE_ORDER.index):
                    tracker.advance(stage)
            for message in update.get("progress", []):
                await tracker.emit(message)

        values = await run_graph(self.graph, state, on_update=on_update)

        if values.get("error"):
            tracker.advance(PipelineStage.FAILED)
            log.error("Generation failed", reason=values.get("error_code"))
            await tracker.emit(values["error"])
            raise GenerationFailedError(values.get("error_code") or "unknown", values["error"])

        region: Region = values.get("region") or Region.GLOBAL
        cv: CvContent = values["cv"]
        letter: Optional[CoverLetterContent] = values.get("cover_letter")
        requirements: JobRequirements = values.get("requirements") or JobRequirements()

        await tracker.emit("Formatting documents...")
        safe_name = sanitize_filename(cv.name or "Candidate")
        safe_title = sanitize_filename(requirements.job_title or job.title or "Position")
        ext = self.renderer.extension

        cv_artifact = SessionArtifact(
            content=self.renderer.render_cv(cv, region),
            filename=f"CV_{safe_name}_{safe_title}{ext}",
            snapshot=to_wire(cv),
        )
        letter_artifact = None
        if letter is not None:
            letter_artifact = SessionArtifact(
                content=self.renderer.render_cover_letter(letter, cv, region, location=job.location),
                filename=f"CoverLetter_{safe_name}_{safe_title}{ext}",
                snapshot=to_wire(letter),
            )

        session = GenerationSession(
            session_id=session_id,
            cv=cv_artifact,
            cover_letter=letter_artifact,
            created_at_ms=self.store.now(),
            region=region,
        )
        self.store.put(session_id, session)
        tracker.advance(PipelineStage.STORED)
        await self._persist(session)
        swept = self.store.sweep(self.max_age_ms)

        await tracker.emit("CV ready for download")
        if letter_artifact is not None:
            await tracker.emit("Cover Letter ready for download")
        tracker.advance(PipelineStage.DONE)
        await tracker.emit("Generation complete!")

        log.info("Generation complete",
                 region=region.value,
                 fallbacks=values.get("fallbacks", []),
                 swept_sessions=swept)

        return GenerationResult(
            session_id=session_id,
            region=region,
            cv=cv,
            cover_letter=letter,
            files={
                "cv": cv_artifact.filename,
                "coverLetter": letter_artifact.filename if letter_artifact else None,
            },
            analysis_summary=build_analysis_summary(values["profile"], requirements, values["gap"]),
            progress=tracker.messages,
            fallbacks=values.get("fallbacks", []),
            stages=tracker.stages,
        )

    async def _persist(self, session: GenerationSession) -> None:
        if self.persist is None:
            return
        try:
            outcome = self.persist(session)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            error = NonFatalPersistenceError(str(e))
            logger.warning("Persisting generation failed",
                           session_id=session.session_id,
                           error_code=error.code,
                           error=str(error))

    def _artifact(self, session_id: str, doc_type: str) -> Optional[SessionArtifact]:
        session = self.store.get(session_id)
        if session is None:
            return None
        if doc_type in CV_DOC_TYPES:
            return session.cv
        if doc_type in COVER_LETTER_DOC_TYPES:
            return session.cover_letter
        return None

    def get_document(self, session_id: str, doc_type: str) -> Optional[tuple[bytes, str]]:
        """
        Fetch a rendered document for download.

        Args:
            session_id: Session id returned by `generate`
            doc_type: "cv" or "cover_letter"

        Returns:
            (content, filename), or None when absent or expired
        """
        artifact = self._artifact(session_id, doc_type)
        if artifact is None:
            return None
        return artifact.content, artifact.filename

    def preview(self, session_id: str, doc_type: str) -> Optional[Dict[str, Any]]:
        """
        Fetch the content snapshot of a document for on-screen preview.

        Returns:
            {"content": ..., "filename": ...}, or None when absent or expired
        """
        artifact = self._artifact(session_id, doc_type)
        if artifact is None:
            return None
        return {"content": artifact.snapshot, "filename": artifact.filename}
