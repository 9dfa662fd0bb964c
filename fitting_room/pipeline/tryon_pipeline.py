"""Try-on orchestration: product image, size estimate, composite."""

import asyncio
import inspect
import logging
import uuid
from typing import Awaitable, Callable

from ..config import PipelineConfig
from ..context import attempt_id_ctx
from ..errors import CredentialError, NetworkError, PipelineError
from ..models import ImagePayload, Product, Stage, TryOnRequest, TryOnResult
from ..services import (
    GenerationClient,
    KeyProvider,
    KeySelector,
    ProductImageFetcher,
    settings_key_provider,
)


logger = logging.getLogger(__name__)

StageListener = Callable[[Stage], Awaitable[None] | None]


class TryOnPipeline:
    """State machine for a single try-on attempt.

    Flow:
    1. Fetch the product's reference image (proxy or data URI passthrough)
    2. Estimate the size from the user photo
    3. Short pacing pause
    4. Render the composite
    5. Publish the result, or the error that stopped the attempt

    Stages run strictly one after another. ``run`` never raises; failures end
    in ``Stage.FAILED`` with ``error`` set. Starting a second attempt while one
    is in flight is the caller's responsibility to prevent.
    """

    def __init__(
        self,
        config: PipelineConfig,
        client: GenerationClient | None = None,
        fetcher: ProductImageFetcher | None = None,
        key_selector: KeySelector | None = None,
        key_provider: KeyProvider | None = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ):
        self.config = config
        self.key_selector = key_selector

        # Initialize services
        self.client = client or GenerationClient(
            config,
            key_provider=key_provider or settings_key_provider,
            sleep=sleep,
        )
        self.fetcher = fetcher or ProductImageFetcher(config.image)

        self._sleep = sleep
        self._listeners: list[StageListener] = []
        self._listener_tasks: set[asyncio.Task] = set()
        self._generation = 0

        self.stage = Stage.IDLE
        self.result: TryOnResult | None = None
        self.error: PipelineError | None = None

    @property
    def stage_label(self) -> str:
        return self.stage.label

    def add_listener(self, listener: StageListener) -> None:
        """Register a callback invoked with every new stage.

        Coroutine functions are scheduled on the running loop; ``run`` waits
        for them before it returns.
        """
        self._listeners.append(listener)

    def remove_listener(self, listener: StageListener) -> None:
        self._listeners.remove(listener)

    async def run(
        self,
        user_image: ImagePayload | None,
        product: Product | None,
    ) -> TryOnResult | None:
        """Run one attempt end to end.

        Args:
            user_image: The user's photo
            product: The selected product

        Returns:
            The result, or None if an input was missing, the attempt failed,
            or the pipeline was reset while it ran
        """
        if user_image is None or product is None:
            logger.debug("Attempt not started: photo or product missing")
            return None

        request = TryOnRequest(user_image=user_image, product=product)
        generation = self._generation
        self.result = None
        self.error = None

        result = None
        token = attempt_id_ctx.set(uuid.uuid4().hex[:8])
        try:
            result = await self._execute(request, generation)
        except PipelineError as e:
            self._fail(e, generation)
        except Exception as e:
            logger.exception("Unexpected failure during try-on")
            self._fail(NetworkError(str(e) or "A technical error occurred."), generation)
        finally:
            attempt_id_ctx.reset(token)

        await self._drain_listeners()
        return result

    def reset(self) -> None:
        """Return to idle, discarding any result or error.

        An in-flight attempt is not cancelled; its outcome is dropped when it
        completes.
        """
        if self.stage.is_running:
            logger.info("Reset while %s; the running attempt will be discarded", self.stage.value)
        self._generation += 1
        self.result = None
        self.error = None
        self._transition(Stage.IDLE)

    async def _execute(self, request: TryOnRequest, generation: int) -> TryOnResult | None:
        product = request.product
        logger.info("Try-on started for product %s", product.id)

        await self._ensure_key()

        self._transition(Stage.FETCHING_PRODUCT, generation)
        product_image = await self.fetcher.fetch(product.image_url)

        self._transition(Stage.ESTIMATING_SIZE, generation)
        size = await self.client.estimate_size(request.user_image, product.name)

        if self.config.pacing_delay > 0:
            await self._sleep(self.config.pacing_delay)

        self._transition(Stage.RENDERING, generation)
        image = await self.client.compose_tryon(request.user_image, product_image, product)

        if generation != self._generation:
            logger.info("Discarding result of an attempt that was reset")
            return None

        self.result = TryOnResult(image=image, size=size)
        self._transition(Stage.SUCCEEDED, generation)
        logger.info("Try-on complete: size %s, %d bytes", size.value, len(image.data))
        return self.result

    async def _ensure_key(self) -> None:
        """Credential-gated mode: refuse to call the backend without a chosen key."""
        if not self.config.requires_key_selection:
            return
        if self.key_selector is None or not await self.key_selector.has_selected_api_key():
            raise CredentialError()

    def _fail(self, error: PipelineError, generation: int) -> None:
        if generation != self._generation:
            logger.info("Discarding failure of an attempt that was reset: %s", error.message)
            return

        if isinstance(error, CredentialError) and self.key_selector is not None:
            self.key_selector.invalidate()

        logger.error("Try-on failed (%s): %s", error.kind.value, error.message)
        self.result = None
        self.error = error
        self._transition(Stage.FAILED, generation)

    def _transition(self, stage: Stage, generation: int | None = None) -> None:
        if generation is not None and generation != self._generation:
            return
        self.stage = stage
        logger.info("Stage: %s", stage.value)
        for listener in list(self._listeners):
            try:
                outcome = listener(stage)
            except Exception:
                logger.exception("Stage listener failed")
                continue
            if inspect.isawaitable(outcome):
                self._schedule_listener(outcome)

    def _schedule_listener(self, outcome: Awaitable[None]) -> None:
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("Async stage listener skipped: no running event loop")
            if inspect.iscoroutine(outcome):
                outcome.close()
            return
        task = asyncio.ensure_future(outcome)
        self._listener_tasks.add(task)
        task.add_done_callback(self._listener_done)

    def _listener_done(self, task: asyncio.Future) -> None:
        self._listener_tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Stage listener failed", exc_info=task.exception())

    async def _drain_listeners(self) -> None:
        """Wait for async listeners scheduled so far."""
        if self._listener_tasks:
            await asyncio.gather(*list(self._listener_tasks), return_exceptions=True)
