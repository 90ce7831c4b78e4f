"""Pipeline orchestration: search, download, scale, caption, stitch, upload.

A run moves through fixed stages. Inside a stage the independent work
for each clip (the optional query clip and the reference clip showing
the time) runs concurrently: network calls on a thread pool, ffmpeg jobs
as separate processes. A stage always waits for all of its work before
the next stage starts; if anything failed, the first error is raised
once everything has finished. There is no cancellation.
"""

from __future__ import annotations

import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime
from functools import partial
from pathlib import Path
from typing import Any, Callable, Union

from time_for.captions.text import query_caption, timestamp_caption
from time_for.clients.download import Downloader
from time_for.clients.imgur import Uploader
from time_for.clients.tenor import GifSearchClient
from time_for.config import TimeForConfig, get_work_dir
from time_for.errors import ErrorContext, MediaIoError, ToolNotFoundError, UploadError
from time_for.ffmpeg import MediaTranscoder, TranscodeHandle
from time_for.logging import (
    get_logger,
    log_operation_complete,
    log_operation_failed,
    log_operation_start,
)
from time_for.models.asset import MediaAsset
from time_for.models.outcome import PipelineOutcome, PipelineState
from time_for.models.request import OutputFormat, PipelineRequest
from time_for.presenter import ConsolePresenter, ResultPresenter

logger = get_logger(__name__)

REFERENCE = "reference"
QUERY = "query"

REFERENCE_FILE = "look_at_time.webm"
QUERY_FILE = "query.webm"
FINAL_FILE = "full.webm"

# Anything with a blocking result(): thread pool futures and ffmpeg handles
StageTask = Union[Future, TranscodeHandle]


class PipelineOrchestrator:
    """Runs one request from search to presentation.

    An instance owns the assets and jobs of exactly one run.
    """

    def __init__(
        self,
        config: TimeForConfig,
        transcoder: MediaTranscoder | None = None,
        search_client: GifSearchClient | None = None,
        downloader: Downloader | None = None,
        uploader: Uploader | None = None,
        presenter: ResultPresenter | None = None,
        clock: Callable[[], datetime] = datetime.now,
        on_state: Callable[[PipelineState], None] | None = None,
    ):
        """Initialize the orchestrator.

        Args:
            config: Loaded configuration
            transcoder: ffmpeg wrapper; built from config if omitted
            search_client: Tenor client; built from config on first use
            downloader: Clip downloader
            uploader: Imgur uploader
            presenter: Receives the outcome at the end of the run
            clock: Source of the local time for the timestamp caption
            on_state: Called on every state transition
        """
        self.config = config
        self.transcoder = transcoder or MediaTranscoder(
            config.ffmpeg,
            style=config.caption.to_style(),
            size=config.target_size,
        )
        self._search_client = search_client
        self.downloader = downloader or Downloader(timeout=config.request_timeout)
        self.uploader = uploader or Uploader(
            config.imgur_client_id,
            url=config.upload.url,
            timeout=config.request_timeout,
        )
        self.presenter = presenter or ConsolePresenter()
        self._clock = clock
        self._on_state = on_state

        self.state = PipelineState.IDLE
        self.failure: BaseException | None = None
        self.run_id = uuid.uuid4().hex[:12]
        self._outcome = PipelineOutcome(run_id=self.run_id, states=[PipelineState.IDLE])

    def run(self, request: PipelineRequest) -> PipelineOutcome:
        """Execute the whole pipeline.

        Args:
            request: What to build

        Returns:
            PipelineOutcome; an upload failure still counts as success and
            leaves ``link`` empty

        Raises:
            TimeForError: For any unrecoverable failure; the orchestrator is
                left in the FAILED state
        """
        if self.state != PipelineState.IDLE:
            raise RuntimeError("A PipelineOrchestrator can only run once")

        started = time.monotonic()
        log_operation_start(logger, "time-for run", run_id=self.run_id, query=request.query)
        try:
            self._execute(request)
        except Exception as e:
            self.failure = e
            self._transition(PipelineState.FAILED)
            log_operation_failed(logger, "time-for run", e, run_id=self.run_id)
            raise

        log_operation_complete(
            logger,
            "time-for run",
            duration=time.monotonic() - started,
            run_id=self.run_id,
        )
        return self._outcome

    def _execute(self, request: PipelineRequest) -> None:
        # Nothing touches the network or the disk before these checks
        if not self.transcoder.is_available():
            raise ToolNotFoundError()
        search_client = self._get_search_client()

        work_dir = self._prepare_work_dir(request)
        assets = {REFERENCE: MediaAsset(work_dir / REFERENCE_FILE)}
        if request.has_query:
            assets[QUERY] = MediaAsset(work_dir / QUERY_FILE)

        with ThreadPoolExecutor(
            max_workers=self.config.max_parallel,
            thread_name_prefix="time-for",
        ) as executor:
            searches = {
                REFERENCE: partial(
                    executor.submit,
                    search_client.search,
                    self.config.search.reference_query,
                    self.config.search.reference_candidates,
                ),
            }
            if request.has_query:
                searches[QUERY] = partial(
                    executor.submit,
                    search_client.search,
                    request.query,
                    request.considered_gifs,
                )
            found = self._run_stage(PipelineState.SEARCHING, searches)

            self._run_stage(
                PipelineState.DOWNLOADING,
                {
                    name: partial(executor.submit, self.downloader.download, found[name].url, asset.base)
                    for name, asset in assets.items()
                },
            )

        self._run_stage(
            PipelineState.SCALING,
            {
                name: partial(self.transcoder.scale, asset.base, asset.scaled, self.config.target_size)
                for name, asset in assets.items()
            },
        )

        captions = {REFERENCE: timestamp_caption(self._clock(), request.delay_seconds)}
        if request.has_query:
            captions[QUERY] = query_caption(request.query, request.custom_text)
        self._run_stage(
            PipelineState.CAPTIONING,
            {
                name: partial(self.transcoder.caption, asset.scaled, captions[name], asset.captioned)
                for name, asset in assets.items()
            },
        )

        final_path = self._stitch(request, assets, work_dir / FINAL_FILE)
        self._outcome.final_path = final_path

        if request.no_upload:
            logger.info("Upload skipped", extra={"path": str(final_path)})
        else:
            self._upload(final_path)

        self._transition(PipelineState.PRESENTING)
        self.presenter.present(self._outcome, request)
        self._transition(PipelineState.DONE)

    def _get_search_client(self) -> GifSearchClient:
        if self._search_client is None:
            self._search_client = GifSearchClient(
                self.config.require_tenor_key(),
                base_url=self.config.search.base_url,
                media_format=self.config.search.media_format,
                timeout=self.config.request_timeout,
                default_candidates=self.config.search.default_limit,
            )
        return self._search_client

    def _prepare_work_dir(self, request: PipelineRequest) -> Path:
        work_dir = get_work_dir(self.config, relative=request.relative)
        try:
            work_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise MediaIoError(
                "Could not create working directory",
                context={"path": str(work_dir)},
            ) from e
        logger.debug("Working directory ready", extra={"path": str(work_dir)})
        return work_dir

    def _run_stage(
        self,
        state: PipelineState,
        operations: dict[str, Callable[[], StageTask]],
    ) -> dict[str, Any]:
        """Start every operation of a stage, then wait for all of them.

        Returns:
            Result of each operation by asset name

        Raises:
            The first error raised while starting or waiting, after every
            started operation has finished
        """
        self._transition(state)
        started_at = time.monotonic()

        with ErrorContext(f"stage {state.value}", context={"run_id": self.run_id}):
            tasks: dict[str, StageTask] = {}
            errors: list[Exception] = []

            for name, start in operations.items():
                try:
                    tasks[name] = start()
                except Exception as e:
                    errors.append(e)
                    break

            results: dict[str, Any] = {}
            for name, task in tasks.items():
                try:
                    results[name] = task.result()
                except Exception as e:
                    errors.append(e)

            if errors:
                raise errors[0]

        log_operation_complete(
            logger,
            f"stage {state.value}",
            duration=time.monotonic() - started_at,
            assets=",".join(operations),
        )
        return results

    def _stitch(
        self,
        request: PipelineRequest,
        assets: dict[str, MediaAsset],
        final_path: Path,
    ) -> Path:
        """Produce the final file: reference clip first, query clip second."""
        self._transition(PipelineState.STITCHING)
        reference = assets[REFERENCE]

        with ErrorContext("stage stitching", context={"run_id": self.run_id}):
            if QUERY in assets:
                manifest = final_path.with_name(f"concat_list_{self.run_id}.txt")
                try:
                    self.transcoder.concat(
                        reference.captioned,
                        assets[QUERY].captioned,
                        final_path,
                        strategy=request.concat_strategy,
                        manifest=manifest,
                    ).result()
                finally:
                    manifest.unlink(missing_ok=True)
            else:
                try:
                    reference.captioned.replace(final_path)
                except OSError as e:
                    raise MediaIoError(
                        f"Could not move captioned clip into place: {e}",
                        context={"path": str(final_path)},
                    ) from e

            if request.output_format == OutputFormat.GIF:
                final_path = self.transcoder.convert_to_gif(final_path).result()

        logger.info("Final clip ready", extra={"path": str(final_path)})
        return final_path

    def _upload(self, final_path: Path) -> None:
        self._transition(PipelineState.UPLOADING)
        try:
            self._outcome.link = self.uploader.upload(final_path)
        except UploadError as e:
            # Recovered: the local file is presented instead
            logger.warning(f"Upload failed, falling back to local file: {e.message}")
            self._outcome.upload_error = e.message

    def _transition(self, state: PipelineState) -> None:
        logger.debug(f"{self.state.value} -> {state.value}", extra={"run_id": self.run_id})
        self.state = state
        self._outcome.states.append(state)
        if self._on_state is not None:
            self._on_state(state)
