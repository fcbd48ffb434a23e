import logging

from pymongo.errors import PyMongoError
from fastapi.concurrency import run_in_threadpool

from app.config import Settings
from app.errors import AnalysisFailed, AnalysisStage, MissingCredentialError, StorageError
from app.models import AnalysisRecord, UploadedDocument
from app.services.ai_service import AIService, build_prompt
from app.services.extract_service import TextExtractor
from app.services.key_service import KeyService
from app.services.parse_service import parse_analysis
from app.services.storage_service import StorageService
from app.services.store_service import StoreService

logger = logging.getLogger(__name__)


class AnalysisService:
    """
    Runs one resume analysis end to end:

        credential_lookup -> text_extraction -> prompt_build -> upstream_call
        -> response_parse -> persist -> done

    Any stage can end the run with an AnalysisFailed subclass tagged with that
    stage. A reply that cannot be parsed is not a failure; it is replaced by
    the fallback result and recorded with result_source "fallback".
    """

    def __init__(
        self,
        settings: Settings,
        keys: KeyService,
        storage: StorageService,
        extractor: TextExtractor,
        ai: AIService,
        store: StoreService,
    ):
        self.provider = settings.provider_service_name
        self.char_limit = settings.prompt_char_limit
        self.keys = keys
        self.storage = storage
        self.extractor = extractor
        self.ai = ai
        self.store = store

    async def analyze(self, user_id: int, document: UploadedDocument) -> AnalysisRecord:
        try:
            return await self._run(user_id, document)
        except AnalysisFailed as e:
            logger.warning(f"Analysis for user {user_id} failed at {e.stage.value}: {e.detail}")
            raise

    @staticmethod
    def _enter(user_id: int, stage: AnalysisStage):
        logger.debug(f"Analysis for user {user_id} entering {stage.value}")

    async def _run(self, user_id: int, document: UploadedDocument) -> AnalysisRecord:
        self._enter(user_id, AnalysisStage.CREDENTIAL_LOOKUP)
        try:
            api_key = await run_in_threadpool(self.keys.get, user_id, self.provider)
        except PyMongoError:
            logger.exception(f"Could not look up {self.provider} key for user {user_id}")
            raise StorageError("API key could not be read", stage=AnalysisStage.CREDENTIAL_LOOKUP)
        if not api_key:
            raise MissingCredentialError()

        self._enter(user_id, AnalysisStage.TEXT_EXTRACTION)
        try:
            data = await self.storage.read(document)
        except OSError:
            logger.exception(f"Could not read stored upload {document.storage_ref}")
            raise StorageError("Uploaded file could not be read", stage=AnalysisStage.TEXT_EXTRACTION)
        extracted = await run_in_threadpool(self.extractor.extract, data, document.document_type)

        self._enter(user_id, AnalysisStage.PROMPT_BUILD)
        prompt = build_prompt(extracted.text, self.char_limit)

        self._enter(user_id, AnalysisStage.UPSTREAM_CALL)
        reply = await self.ai.analyze_resume(api_key, prompt)

        self._enter(user_id, AnalysisStage.RESPONSE_PARSE)
        parsed = parse_analysis(reply)

        self._enter(user_id, AnalysisStage.PERSIST)
        record = AnalysisRecord(
            user_id=user_id,
            storage_ref=document.storage_ref,
            original_name=document.original_name,
            result=parsed.result,
            score=parsed.result.score,
            result_source=parsed.source,
        )
        try:
            await run_in_threadpool(self.store.save, record)
        except PyMongoError:
            logger.exception(
                f"Failed to save analysis for user {user_id}; "
                f"lost result: {parsed.result.model_dump_json(by_alias=True)}"
            )
            raise StorageError()

        self._enter(user_id, AnalysisStage.DONE)
        logger.info(
            f"Analysis {record.id} saved for user {user_id} "
            f"(score={record.score}, source={parsed.source}, extraction={extracted.method})"
        )
        return record
