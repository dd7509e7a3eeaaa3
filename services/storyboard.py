"""Storyboard orchestration: parse a script, then enhance and render each scene in order.

A run is an explicit ``StoryboardRun`` value that moves through
``IDLE -> RUNNING(i) -> DONE | FAILED``.  Every transition produces a new
snapshot, so callers can stream progress while the run is in flight.
Scenes are processed strictly one after another with a single request in
flight; the first failure ends the run and keeps the frames produced so far.
"""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable

from prometheus_client import Counter

from core.models import RunStatus, SceneDescriptor, StoryboardItem, StoryboardRun
from llm.base import BaseImageProvider
from parsers.script import parse_script

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[], Awaitable[BaseImageProvider]]

NO_SCENES_MESSAGE = (
    "No valid scenes found. Ensure scenes start with **1. ...** "
    "and contain descriptions like [画面: ...]."
)
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred during generation."

PHASE_PROMPT = "Creating image prompt..."
PHASE_IMAGE = "Creating image..."

SCENES_PARSED = Counter(
    "storyboard_scenes_parsed_total", "Scenes with descriptions found in submitted scripts"
)
FRAMES_GENERATED = Counter(
    "storyboard_frames_generated_total", "Storyboard frames generated successfully"
)
RUNS_FINISHED = Counter(
    "storyboard_runs_total", "Finished storyboard runs", ["status"]
)


def progress_message(index: int, total: int, phase: str) -> str:
    """Format the progress line shown while scene *index* (1-based) is generated."""
    return f"Generating scene {index}/{total}: {phase}"


class StoryboardService:
    """Generate a storyboard for a script with one image provider.

    Pass either a ready *provider* or a *provider_factory*. The factory is
    awaited only once a script actually contains scenes, so a script without
    scenes gets the guidance message even when no provider can be built.
    """

    def __init__(
        self,
        provider: BaseImageProvider | None = None,
        parser: Callable[[str], list[SceneDescriptor]] = parse_script,
        provider_factory: ProviderFactory | None = None,
    ) -> None:
        if provider is None and provider_factory is None:
            raise ValueError("StoryboardService needs a provider or a provider factory")
        self.provider = provider
        self.provider_factory = provider_factory
        self.parser = parser

    async def get_provider(self) -> BaseImageProvider:
        """Return the image provider, building it on first use."""
        if self.provider is None:
            self.provider = await self.provider_factory()
        return self.provider

    async def iter_run(self, script: str) -> AsyncIterator[StoryboardRun]:
        """Run the pipeline for *script*, yielding a snapshot after every transition.

        The last snapshot yielded is always finished (``DONE`` or ``FAILED``).
        Errors from building the provider propagate before the first
        snapshot; they are not part of the run.
        """
        scenes = self.parser(script)
        SCENES_PARSED.inc(len(scenes))

        if not scenes:
            logger.info("No scenes with descriptions found in script")
            RUNS_FINISHED.labels(status=RunStatus.FAILED.value).inc()
            yield StoryboardRun(status=RunStatus.FAILED, error=NO_SCENES_MESSAGE)
            return

        provider = await self.get_provider()
        total = len(scenes)
        run = StoryboardRun(status=RunStatus.RUNNING, total_scenes=total)
        logger.info(f"Starting storyboard run with {total} scenes via {provider.provider_name}")

        for index, scene in enumerate(scenes, start=1):
            logger.info(f"Scene {index}/{total}: {scene.label}")

            run = run.model_copy(
                update={
                    "current_scene": index,
                    "progress": progress_message(index, total, PHASE_PROMPT),
                }
            )
            yield run

            try:
                prompt = await provider.enhance_prompt(scene.description)

                run = run.model_copy(update={"progress": progress_message(index, total, PHASE_IMAGE)})
                yield run

                image = await provider.synthesize_image(prompt)
            except Exception as e:
                logger.error(f"Storyboard run failed at scene {index}/{total}: {e}", exc_info=True)
                RUNS_FINISHED.labels(status=RunStatus.FAILED.value).inc()
                yield run.model_copy(
                    update={
                        "status": RunStatus.FAILED,
                        "progress": "",
                        "error": str(e) or UNKNOWN_ERROR_MESSAGE,
                    }
                )
                return

            item = StoryboardItem(
                label=scene.label,
                description=scene.description,
                prompt=prompt,
                image=image,
                mime_type=provider.image_mime_type,
            )
            FRAMES_GENERATED.inc()
            run = run.model_copy(update={"items": [*run.items, item]})

        logger.info(f"Storyboard run completed: {total} frames")
        RUNS_FINISHED.labels(status=RunStatus.DONE.value).inc()
        yield run.model_copy(
            update={"status": RunStatus.DONE, "current_scene": None, "progress": ""}
        )

    async def run(self, script: str) -> StoryboardRun:
        """Run the pipeline to completion and return the final state."""
        final = StoryboardRun()
        async for snapshot in self.iter_run(script):
            final = snapshot
        return final
