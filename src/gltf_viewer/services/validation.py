"""バリデーションの実行と結果の受け渡しを行うサービス。"""

from pydantic import ValidationError

from gltf_viewer.logger import get_logger
from gltf_viewer.models.errors import FetchError, RootFetchError, ValidatorInvocationError
from gltf_viewer.models.report import RawReport, ReportException, ValidationOutcome
from gltf_viewer.models.request import AssetMap, ValidationRequest
from gltf_viewer.services.normalizer import ReportNormalizer
from gltf_viewer.services.presenter import ReportPresenter
from gltf_viewer.services.resolver import AssetResolver, Fetcher
from gltf_viewer.validators.gltf import Validator

logger = get_logger(__name__)


class ValidationService:
    """1つのビューアに対応するバリデーションの実行を管理する。

    実行ごとに連番を振り、後から開始した実行より先に完了した古い結果は表示しない。
    実行中のバリデーションのキャンセルは行わない。
    """

    def __init__(
        self,
        validator: Validator,
        fetcher: Fetcher,
        normalizer: ReportNormalizer,
        presenter: ReportPresenter,
    ) -> None:
        self._validator = validator
        self._fetcher = fetcher
        self._normalizer = normalizer
        self._presenter = presenter
        self._sequence = 0

    @property
    def presenter(self) -> ReportPresenter:
        return self._presenter

    async def validate(self, root_file: str, root_path: str = "", asset_map: AssetMap | None = None) -> ValidationOutcome:
        """ルートファイルを検証し、結果を表示する。

        Args:
            root_file: ルートファイルのURL。
            root_path: 相対URIの正規化に使うルートパス。
            asset_map: ドロップされたファイル群（正規化済み相対パス → 内容）。

        Returns:
            正規化済みレポート、または捕捉された例外。
        """
        request = ValidationRequest(root_file=root_file, root_path=root_path, asset_map=asset_map or {})
        return await self.validate_request(request)

    async def validate_request(self, request: ValidationRequest) -> ValidationOutcome:
        """バリデーション要求を実行し、最新の要求であれば結果を表示する。"""
        self._sequence += 1
        sequence = self._sequence
        logger.info("Validation #%d started: %s", sequence, request.root_file)

        outcome = await self._run(request)

        if sequence != self._sequence:
            logger.info("Validation #%d superseded by #%d; result discarded", sequence, self._sequence)
            return outcome

        self._presenter.present(outcome)
        if isinstance(outcome, ReportException):
            logger.warning("Validation #%d failed: %s: %s", sequence, outcome.error, outcome.message)
        else:
            logger.info(
                "Validation #%d finished: %d errors, %d warnings, %d infos, %d hints",
                sequence,
                outcome.issues.num_errors,
                outcome.issues.num_warnings,
                outcome.issues.num_infos,
                outcome.issues.num_hints,
            )
        return outcome

    async def _run(self, request: ValidationRequest) -> ValidationOutcome:
        """ルートファイル取得 → バリデータ実行 → 正規化。失敗はすべて例外結果にまとめる。"""
        resolver = AssetResolver(request.root_file, request.root_path, request.asset_map, self._fetcher)
        try:
            # アセットマップにあってもルートファイルはURLから取得する
            try:
                data = await self._fetcher.fetch(request.root_file)
            except FetchError as e:
                raise RootFetchError(e.url, e.reason, e.status_code) from e

            raw_data = await self._validator.validate_bytes(data, resolver.resolve)

            try:
                raw = RawReport.model_validate(raw_data)
            except ValidationError as e:
                raise ValidatorInvocationError(f"Malformed validator report: {e}") from e

            return self._normalizer.normalize(raw)
        except Exception as e:
            # どの段階の失敗も例外結果として表示する
            logger.debug("Validation error captured", exc_info=True)
            return ReportException.from_exception(e)
