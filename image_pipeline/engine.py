# =============================================================================
# image_pipeline/engine.py - Image Pipeline Engine
# =============================================================================
# Runs each selected photo through the four stages:
#
#   PENDING -> VALIDATED -> RESIZED -> UPLOADED -> LINKED
#
# A photo that fails stops at REJECTED, RESIZE_FAILED, UPLOAD_FAILED or
# LINK_FAILED. Nothing is retried. One photo's failure never stops the
# others, so a batch can end partially successful.
#
# Photos of a batch run concurrently, at most `concurrency` at a time
# (1 = strictly one after another). Photo i always gets display_order
# start_position + i, whatever order the photos finish in.
#
# Usage:
#   pipeline = ImagePipeline(validator, resizer, uploader, linker, concurrency=2)
#   result = await pipeline.process_batch(files, bowl_id, start_position=0)
#   result.status  # BatchStatus.SUCCESS / PARTIAL / FAILED / EMPTY
# =============================================================================

import asyncio
import logging
import time

from app.exceptions import ImagePipelineError
from core.models.pipeline import (
    FAILURE_STAGES,
    UNEXPECTED_FAILURE_STAGES,
    BatchResult,
    CandidateFile,
    FailureReason,
    FileOutcome,
    FileStage,
)
from lib.utils import normalize_uuid

from .linker import ImageLinker
from .resizer import ImageResizer
from .uploader import ImageSetUploader
from .validator import ImageValidator

logger = logging.getLogger(__name__)


class ImagePipeline:
    """
    Orchestrates Validator -> Resizer -> Uploader -> Linker.

    Storage, database and Pillow calls are blocking, so each stage runs in a
    worker thread and the event loop stays free.
    """

    def __init__(
        self,
        validator: ImageValidator,
        resizer: ImageResizer,
        uploader: ImageSetUploader,
        linker: ImageLinker,
        concurrency: int = 1,
    ):
        self.validator = validator
        self.resizer = resizer
        self.uploader = uploader
        self.linker = linker
        self.concurrency = max(1, concurrency)

    async def process_file(
        self,
        candidate: CandidateFile,
        bowl_id,
        position: int,
        index: int = 0,
    ) -> FileOutcome:
        """
        Take one photo through every stage.

        Args:
            candidate: The selected photo
            bowl_id: Owning bowl
            position: display_order to assign
            index: Position of the photo in the submitted list

        Returns:
            FileOutcome with the final stage and, on success, the image row
        """
        stage = FileStage.PENDING

        try:
            self.validator.validate(candidate)
            stage = FileStage.VALIDATED

            processed = await asyncio.to_thread(self.resizer.resize, candidate)
            stage = FileStage.RESIZED

            uploaded = await asyncio.to_thread(
                self.uploader.upload, processed, bowl_id, candidate.filename
            )
            stage = FileStage.UPLOADED

            record = await asyncio.to_thread(
                self.linker.link, uploaded, bowl_id, processed, position, candidate.filename
            )
            stage = FileStage.LINKED

        except ImagePipelineError as e:
            final_stage = FAILURE_STAGES[e.reason]
            logger.warning(
                f"Image {index + 1} ({candidate.filename}) for bowl {normalize_uuid(bowl_id)} "
                f"stopped after {stage.value}: {final_stage.value} - {e.message}"
            )
            return FileOutcome(
                index=index,
                filename=candidate.filename,
                stage=final_stage,
                position=position,
                reason=e.reason,
                message=e.message,
                orphaned_paths=list(getattr(e, "orphaned_paths", [])),
            )
        except Exception as e:
            # Anything else still ends only this photo
            final_stage = UNEXPECTED_FAILURE_STAGES[stage]
            logger.exception(
                f"Image {index + 1} ({candidate.filename}) for bowl {normalize_uuid(bowl_id)} "
                f"failed unexpectedly after {stage.value}: {e}"
            )
            return FileOutcome(
                index=index,
                filename=candidate.filename,
                stage=final_stage,
                position=position,
                reason=FailureReason.UNEXPECTED_ERROR,
                message=f"Unexpected error while processing image: {e.__class__.__name__}",
            )

        return FileOutcome(
            index=index,
            filename=candidate.filename,
            stage=stage,
            position=position,
            image=record,
        )

    async def process_batch(
        self,
        files: list[CandidateFile],
        bowl_id,
        start_position: int = 0,
    ) -> BatchResult:
        """
        Process every photo of a submission.

        Args:
            files: Photos in the order the user selected them
            bowl_id: Owning bowl
            start_position: display_order of the first photo (one past the
                bowl's highest display_order when adding to an existing bowl)

        Returns:
            BatchResult with one outcome per photo, in submission order
        """
        if not files:
            return BatchResult()

        started = time.time()
        semaphore = asyncio.Semaphore(self.concurrency)

        async def run(index: int, candidate: CandidateFile) -> FileOutcome:
            async with semaphore:
                return await self.process_file(
                    candidate, bowl_id, position=start_position + index, index=index
                )

        outcomes = await asyncio.gather(*(run(i, f) for i, f in enumerate(files)))
        result = BatchResult(outcomes=list(outcomes))

        logger.info(
            f"Processed {len(files)} image(s) for bowl {normalize_uuid(bowl_id)} in "
            f"{time.time() - started:.2f}s: {result.uploaded_count} uploaded, "
            f"{result.failed_count} failed"
        )
        return result
