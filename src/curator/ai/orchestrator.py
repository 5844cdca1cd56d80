"""Analysis Orchestrator: the Personal Curator pipeline.

This module is the ENTRY POINT the owning application talks to. It turns a
user's content history into an ``AnalysisBundle``:

1. Feature extraction - deterministic summary of the history
2. Independent domains - emotion, lifestyle, growth, creative (concurrent)
3. Dependent domains - cultural (after emotion), suggestions
4. Personality synthesis - merges the earlier profiles (optional)
5. Dynamic comments - K styled variations about the latest post (optional)

Every domain call is isolated: a failure in one domain is caught at its own
boundary, logged, and replaced by a synthesized fallback so siblings are
never aborted. The bundle is persisted after every domain, so an interrupted
run keeps the subset it finished.

Example:
    >>> orchestrator = create_orchestrator()
    >>> bundle = asyncio.run(orchestrator.run_full_analysis("user-42", items))
    >>> bundle.state
    <RunState.COMPLETE: 'complete'>
    >>> bundle.emotion.data.emotions.joy
    0.8
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Sequence

from curator.ai.client import GenerativeModelClient, get_client
from curator.ai.comments import plan_comment_styles
from curator.ai.fallback import FallbackSynthesizer
from curator.ai.parser import ResponseParser
from curator.ai.prompts import build_comment_prompt, build_prompt
from curator.analysis.features import FeatureExtractor, chronological, extract_literals
from curator.config import AppConfig, get_config
from curator.core.bundle import AnalysisBundle, RunState
from curator.core.content import ContentItem
from curator.core.envelope import (
    Provenance,
    ResultEnvelope,
    fallback_envelope,
    mock_envelope,
    model_envelope,
)
from curator.core.profiles import (
    CommentStyle,
    Domain,
    DomainProfile,
    DynamicComment,
    GrowthProfile,
    GrowthSnapshot,
    Milestone,
    PersonalityProfile,
)
from curator.core.summary import FeatureSummary
from curator.storage.cache import ResultCache, create_cache

INSUFFICIENT_DATA_ERROR = "Insufficient data"


# =============================================================================
# Task Graph
# =============================================================================


@dataclass(frozen=True)
class DomainTask:
    """One node of the analysis graph.

    Attributes:
        domain: Domain computed by this task.
        depends_on: Domains whose results must exist before this one starts.
        optional: Whether the task can be switched off by configuration.
    """

    domain: Domain
    depends_on: tuple[Domain, ...] = ()
    optional: bool = False


ANALYSIS_GRAPH: tuple[DomainTask, ...] = (
    DomainTask(Domain.EMOTION),
    DomainTask(Domain.LIFESTYLE),
    DomainTask(Domain.GROWTH),
    DomainTask(Domain.CREATIVE),
    DomainTask(Domain.CULTURAL, depends_on=(Domain.EMOTION,)),
    DomainTask(
        Domain.SUGGESTIONS,
        depends_on=(Domain.EMOTION, Domain.LIFESTYLE, Domain.GROWTH),
        optional=True,
    ),
    DomainTask(
        Domain.PERSONALITY,
        depends_on=(Domain.EMOTION, Domain.LIFESTYLE, Domain.CREATIVE),
        optional=True,
    ),
)


def execution_levels(
    graph: Sequence[DomainTask] = ANALYSIS_GRAPH,
) -> list[list[DomainTask]]:
    """Group tasks into levels whose members only depend on earlier levels.

    Dependencies on domains that are not in ``graph`` are ignored, so a
    filtered graph still schedules.

    Raises:
        ValueError: If the graph contains a cycle.
    """
    present = {task.domain for task in graph}
    remaining = list(graph)
    done: set[Domain] = set()
    levels: list[list[DomainTask]] = []

    while remaining:
        level = [
            task
            for task in remaining
            if all(dep in done or dep not in present for dep in task.depends_on)
        ]
        if not level:
            cycle = ", ".join(task.domain.value for task in remaining)
            raise ValueError(f"Analysis graph has a cycle among: {cycle}")
        levels.append(level)
        done.update(task.domain for task in level)
        remaining = [task for task in remaining if task not in level]

    return levels


# =============================================================================
# Milestones
# =============================================================================


# (kind, title, reached(profile)) checked in order
MILESTONE_RULES: tuple[tuple[str, str, Callable[[GrowthProfile], bool]], ...] = (
    ("technical", "Technical skill breakthrough", lambda p: p.technical >= 80),
    ("artistic", "Artistic expression blossoming", lambda p: p.artistic >= 75),
    ("consistency", "Remarkably consistent", lambda p: p.consistency >= 90),
    ("diversity", "Wide range of experiences", lambda p: p.diversity_average() >= 85),
    ("confidence", "Confidence in your own eye", lambda p: p.self_confidence >= 80),
)


def detect_milestones(
    current: GrowthProfile,
    previous: GrowthProfile | None,
    achieved_at: datetime | None = None,
) -> list[Milestone]:
    """Return milestones newly reached by ``current``.

    With no previous profile the only milestone is the start of tracking.
    Otherwise a milestone counts when the current profile meets its threshold
    and the previous one did not.
    """
    achieved_at = achieved_at or datetime.now(timezone.utc)
    if previous is None:
        return [
            Milestone(
                kind="start",
                title="Growth tracking started",
                description="Your growth journey is now being tracked.",
                achieved_at=achieved_at,
            )
        ]

    reached = []
    for kind, title, rule in MILESTONE_RULES:
        if rule(current) and not rule(previous):
            reached.append(Milestone(kind=kind, title=title, achieved_at=achieved_at))  # type: ignore[arg-type]
    return reached


# =============================================================================
# Progress
# =============================================================================


@dataclass
class AnalysisProgress:
    """Progress information for analysis callbacks.

    Attributes:
        stage: Domain or stage name that just finished.
        current_step: Steps completed so far.
        total_steps: Steps in the whole run.
        message: Human-readable progress message.
        elapsed_seconds: Time elapsed since the run started.
    """

    stage: str
    current_step: int
    total_steps: int
    message: str = ""
    elapsed_seconds: float = 0.0

    def percentage(self) -> float:
        if self.total_steps == 0:
            return 0.0
        return (self.current_step / self.total_steps) * 100.0

    def to_status_line(self) -> str:
        return f"[{self.percentage():3.0f}%] {self.stage}: {self.message} ({self.elapsed_seconds:.1f}s)"


ProgressCallback = Callable[[AnalysisProgress], None]


class _RunContext:
    """Mutable state of one run, shared by its domain tasks."""

    def __init__(
        self,
        user_id: str,
        bundle: AnalysisBundle,
        summary: FeatureSummary,
        literals: list[str],
        total_steps: int,
        progress_callback: ProgressCallback | None,
    ) -> None:
        self.user_id = user_id
        self.bundle = bundle
        self.summary = summary
        self.literals = literals
        self.total_steps = total_steps
        self.progress_callback = progress_callback
        self.steps_done = 0
        self.started = time.perf_counter()
        self.previous_growth: GrowthProfile | None = (
            bundle.growth.data if bundle.growth is not None else None
        )
        self.persist_lock = asyncio.Lock()


# =============================================================================
# Orchestrator
# =============================================================================


class AnalysisOrchestrator:
    """Run every domain analysis for a user and merge the results.

    Collaborators are injected; nothing here reaches for global state.

    Attributes:
        client: Generative model client.
        cache: Result cache, or None to run without persistence.
        fallback: Local synthesizer used when the model path cannot be used.
        extractor: Feature extractor.
        parser: Response parser.
        config: Application configuration.
    """

    def __init__(
        self,
        client: GenerativeModelClient,
        cache: ResultCache | None = None,
        *,
        fallback: FallbackSynthesizer | None = None,
        extractor: FeatureExtractor | None = None,
        parser: ResponseParser | None = None,
        config: AppConfig | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config or get_config()
        seed = self.config.analysis.random_seed
        self.client = client
        self.cache = cache
        self.fallback = fallback or FallbackSynthesizer(random.Random(seed))
        self.extractor = extractor or FeatureExtractor(
            top_k=self.config.analysis.top_k,
            max_items=self.config.analysis.max_items,
        )
        self.parser = parser or ResponseParser()
        self.rng = rng or random.Random(seed)
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def get_cached(self, user_id: str) -> AnalysisBundle | None:
        """Return the cached bundle for a user, if any."""
        if self.cache is None:
            return None
        return self.cache.load(user_id)

    def active_graph(self) -> list[DomainTask]:
        """Tasks enabled by the current configuration."""
        enabled = {
            Domain.SUGGESTIONS: self.config.analysis.enable_suggestions,
            Domain.PERSONALITY: self.config.analysis.enable_personality,
        }
        return [
            task
            for task in ANALYSIS_GRAPH
            if not task.optional or enabled.get(task.domain, True)
        ]

    async def run_full_analysis(
        self,
        user_id: str,
        items: Sequence[ContentItem],
        *,
        comment_count: int | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> AnalysisBundle:
        """Execute the full pipeline for one user.

        MAIN ENTRY POINT for analysis. Never raises for model or storage
        failures: the worst case is a bundle made entirely of low-confidence
        fallback data.

        Args:
            user_id: Owner of the content history.
            items: The user's content items, in any order.
            comment_count: Dynamic comments to generate (None = configured default).
            progress_callback: Called after every completed step.

        Returns:
            The merged bundle in state ``COMPLETE``.
        """
        if comment_count is None:
            comment_count = (
                self.config.analysis.comment_count if self.config.analysis.enable_comments else 0
            )

        summary = self.extractor.extract(items)
        ordered = chronological(items)
        if self.extractor.max_items is not None:
            ordered = ordered[-self.extractor.max_items :]
        literals = extract_literals(ordered, limit=self.config.analysis.literal_count)

        bundle = await self._starting_bundle(user_id)
        bundle.feature_summary = summary
        bundle.state = RunState.RUNNING

        levels = execution_levels(self.active_graph())
        wants_comments = comment_count > 0 and bool(ordered)
        total_steps = sum(len(level) for level in levels) + (1 if wants_comments else 0)
        ctx = _RunContext(user_id, bundle, summary, literals, total_steps, progress_callback)

        self._logger.info(
            f"Starting analysis of {summary.item_count} item(s) "
            f"(model available: {self.client.is_available()})"
        )

        for index, level in enumerate(levels):
            await asyncio.gather(*(self._run_domain(ctx, task.domain) for task in level))
            if index == 0:
                bundle.state = RunState.PARTIALLY_COMPLETE

        if comment_count > 0 and not ordered:
            self._logger.info("No content items; skipping dynamic comments")
        elif wants_comments:
            await self._run_comments(ctx, ordered[-1], comment_count)

        bundle.state = RunState.COMPLETE
        bundle.touch()
        await self._persist(ctx)

        self._logger.info(
            f"Analysis complete in {time.perf_counter() - ctx.started:.2f}s "
            f"(overall confidence {bundle.overall_confidence():.2f})"
        )
        return bundle

    # -------------------------------------------------------------------------
    # Domain execution
    # -------------------------------------------------------------------------

    async def _starting_bundle(self, user_id: str) -> AnalysisBundle:
        if self.cache is None:
            return AnalysisBundle(user_id=user_id)
        cached = await asyncio.to_thread(self.cache.load, user_id)
        if cached is None:
            return AnalysisBundle(user_id=user_id)
        self._logger.debug(f"Resuming from cached bundle with {len(cached.completed_domains())} domain(s)")
        return cached.model_copy(deep=True)

    def _context_for(self, ctx: _RunContext, domain: Domain) -> dict[str, Any]:
        bundle = ctx.bundle
        context: dict[str, Any] = {}
        for name in (Domain.EMOTION, Domain.LIFESTYLE, Domain.GROWTH, Domain.CREATIVE):
            envelope = bundle.get(name)
            if envelope is not None:
                context[name.value] = envelope.data
        if domain == Domain.SUGGESTIONS:
            context["max_suggestions"] = self.config.analysis.max_suggestions
        return context

    async def _run_domain(self, ctx: _RunContext, domain: Domain) -> None:
        """Compute one domain, store it on the bundle and persist."""
        context = self._context_for(ctx, domain)
        envelope = await self._analyze_domain(ctx.summary, ctx.literals, domain, context)

        try:
            if domain == Domain.SUGGESTIONS:
                ranked = envelope.data.ranked(self.config.analysis.max_suggestions)
                envelope = envelope.model_copy(update={"data": ranked})
            elif domain == Domain.GROWTH:
                self._track_growth(ctx, envelope)
        except Exception as e:
            self._logger.error(f"{domain.value} post-processing failed: {type(e).__name__}: {e}")

        ctx.bundle.set(domain, envelope)
        await self._persist(ctx)
        self._emit_progress(ctx, domain.value, f"{domain.value} analysis finished")

    async def _analyze_domain(
        self,
        summary: FeatureSummary,
        literals: list[str],
        domain: Domain,
        context: dict[str, Any],
    ) -> ResultEnvelope:
        """Produce the envelope for one domain. Never raises."""
        start = time.perf_counter()

        def elapsed_ms() -> int:
            return int((time.perf_counter() - start) * 1000)

        def synthesized() -> DomainProfile:
            return self.fallback.synthesize(domain, emotion=context.get("emotion"), summary=summary)

        if not self.client.is_available():
            self._logger.debug(f"{domain.value}: model unavailable, using local synthesis")
            return mock_envelope(synthesized(), processing_time_ms=elapsed_ms())

        if not summary.is_sufficient:
            self._logger.info(f"{domain.value}: insufficient data, using local synthesis")
            return fallback_envelope(
                synthesized(), error=INSUFFICIENT_DATA_ERROR, processing_time_ms=elapsed_ms()
            )

        try:
            prompt = build_prompt(domain, summary, literals, **context)
            text = await self._invoke(prompt)
            profile = self.parser.parse(domain, text, trend=summary.trend)
        except Exception as e:
            self._logger.warning(f"{domain.value} analysis failed: {type(e).__name__}: {e}")
            return fallback_envelope(
                synthesized(), error=str(e) or type(e).__name__, processing_time_ms=elapsed_ms()
            )

        return model_envelope(profile, processing_time_ms=elapsed_ms())

    async def _invoke(self, prompt: str) -> str:
        timeout = self.config.ai.timeout_seconds
        try:
            return await asyncio.wait_for(asyncio.to_thread(self.client.invoke, prompt), timeout)
        except asyncio.TimeoutError as e:
            raise TimeoutError(f"Model call exceeded {timeout:g}s") from e

    def _track_growth(self, ctx: _RunContext, envelope: ResultEnvelope) -> None:
        """Attach milestones and record a growth snapshot for model results."""
        if envelope.provenance != Provenance.MODEL:
            return
        profile: GrowthProfile = envelope.data
        now = datetime.now(timezone.utc)

        carried = list(ctx.previous_growth.milestones) if ctx.previous_growth else []
        known = {(m.kind, m.title) for m in carried}
        fresh = [
            m
            for m in detect_milestones(profile, ctx.previous_growth, achieved_at=now)
            if (m.kind, m.title) not in known
        ]
        profile.milestones = _dedupe_milestones(carried + profile.milestones + fresh)

        for milestone in fresh:
            self._logger.info(f"Milestone reached: {milestone.title}")
        ctx.bundle.record_growth(GrowthSnapshot.from_profile(profile, recorded_at=now))

    # -------------------------------------------------------------------------
    # Dynamic comments
    # -------------------------------------------------------------------------

    async def _run_comments(self, ctx: _RunContext, latest: ContentItem, count: int) -> None:
        personality: PersonalityProfile | None = None
        if ctx.bundle.personality is not None:
            personality = ctx.bundle.personality.data

        styles = plan_comment_styles(count, self.rng)
        envelopes = await asyncio.gather(
            *(self._generate_comment(style, latest, personality) for style in styles)
        )
        ctx.bundle.comments = list(envelopes)
        ctx.bundle.touch()
        await self._persist(ctx)
        self._emit_progress(ctx, "comments", f"{len(envelopes)} comment(s) generated")

    async def _generate_comment(
        self,
        style: CommentStyle,
        item: ContentItem,
        personality: PersonalityProfile | None,
    ) -> ResultEnvelope[DynamicComment]:
        start = time.perf_counter()

        def elapsed_ms() -> int:
            return int((time.perf_counter() - start) * 1000)

        if not self.client.is_available():
            comment = self.fallback.synthesize_comment(style, item, personality)
            return mock_envelope(comment, processing_time_ms=elapsed_ms())

        try:
            text = await self._invoke(build_comment_prompt(style, item, personality))
            comment = self.parser.parse_comment(text, style)
        except Exception as e:
            self._logger.warning(f"Comment generation failed: {type(e).__name__}: {e}")
            comment = self.fallback.synthesize_comment(style, item, personality)
            return fallback_envelope(
                comment, error=str(e) or type(e).__name__, processing_time_ms=elapsed_ms()
            )
        return model_envelope(comment, processing_time_ms=elapsed_ms())

    # -------------------------------------------------------------------------
    # Persistence and progress
    # -------------------------------------------------------------------------

    async def _persist(self, ctx: _RunContext) -> None:
        if self.cache is None:
            return
        async with ctx.persist_lock:
            snapshot = ctx.bundle.model_copy(deep=True)
            saved = await asyncio.to_thread(self.cache.save, ctx.user_id, snapshot)
        if not saved:
            self._logger.warning("Bundle could not be persisted; continuing in memory")

    def _emit_progress(self, ctx: _RunContext, stage: str, message: str) -> None:
        ctx.steps_done += 1
        if ctx.progress_callback is None:
            return
        progress = AnalysisProgress(
            stage=stage,
            current_step=ctx.steps_done,
            total_steps=ctx.total_steps,
            message=message,
            elapsed_seconds=time.perf_counter() - ctx.started,
        )
        try:
            ctx.progress_callback(progress)
        except Exception as e:
            self._logger.warning(f"Progress callback failed: {e}")


def _dedupe_milestones(milestones: list[Milestone]) -> list[Milestone]:
    seen: set[tuple[str, str]] = set()
    unique = []
    for milestone in milestones:
        key = (milestone.kind, milestone.title)
        if key not in seen:
            seen.add(key)
            unique.append(milestone)
    return unique


# =============================================================================
# Factory
# =============================================================================


def create_orchestrator(
    config: AppConfig | None = None,
    client: GenerativeModelClient | None = None,
    cache: ResultCache | None = None,
) -> AnalysisOrchestrator:
    """Wire an orchestrator from configuration.

    The Gemini client and a file-backed cache are created unless supplied.
    With ``cache.enabled`` false the orchestrator runs without persistence.
    """
    config = config or get_config()
    if client is None:
        client = get_client(config)
    if cache is None and config.cache.enabled:
        config.paths.ensure_dirs_exist()
        cache = create_cache(
            config.paths.cache_dir,
            namespace=config.cache.namespace,
            version=config.cache.version,
        )
    return AnalysisOrchestrator(client, cache, config=config)
