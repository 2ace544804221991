"""バリデーションレポートの正規化（重大度の分類、ジェネレータ判定、重複エラーの集約）。"""

import re
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence

from gltf_viewer.config import DEFAULT_AGGREGATED_CODES
from gltf_viewer.models.report import (
    SEVERITY_BUCKETS,
    SEVERITY_ERROR,
    GeneratorEntry,
    Message,
    NormalizedReport,
    RawReport,
)


def generator_matches(entry: GeneratorEntry, generator_id: str) -> bool:
    """レジストリのエントリがジェネレータ文字列に一致するか判定する。

    「*」を含まないエントリは完全一致、含むエントリは「*」を任意の文字列とみなして照合する。
    """
    if not entry.is_pattern:
        return entry.generator == generator_id
    pattern = ".*".join(re.escape(part) for part in entry.generator.split("*"))
    return re.fullmatch(pattern, generator_id, flags=re.DOTALL) is not None


def find_generator(registry: Iterable[GeneratorEntry], generator_id: str) -> GeneratorEntry | None:
    """登録順に照合し、最初に一致したエントリを返す。"""
    return next((entry for entry in registry if generator_matches(entry, generator_id)), None)


def max_severity(report: RawReport) -> int:
    """件数が1以上の最も重い重大度のインデックスを返す。問題が無ければ -1。"""
    for severity in range(len(SEVERITY_BUCKETS)):
        if report.issues.count_for(severity) > 0:
            return severity
    return -1


def partition_messages(messages: Sequence[Message]) -> dict[str, list[Message]]:
    """メッセージを重大度ごとに分ける。各バケット内の順序は元の順序を保つ。"""
    buckets: dict[str, list[Message]] = {name: [] for name in SEVERITY_BUCKETS}
    for message in messages:
        if 0 <= message.severity < len(SEVERITY_BUCKETS):
            buckets[SEVERITY_BUCKETS[message.severity]].append(message)
    return buckets


def aggregate_messages(errors: Sequence[Message], templates: Mapping[str, str]) -> list[Message]:
    """大量に出力されるコードのエラーを、ポインタ単位の合成メッセージ1件にまとめる。

    同じ (code, pointer) が2件以上あるものだけを集約し、1件のものは残す。
    合成メッセージは集約後の (code, pointer) に1件しか存在しないため、
    出力に再適用しても結果は変わらない。

    Args:
        errors: エラーメッセージ列。
        templates: 集約対象コード → 「{count}」を含むメッセージテンプレート。

    Returns:
        集約後のエラーメッセージ列。合成メッセージは末尾に追加される。
    """
    counts = Counter((m.code, m.pointer) for m in errors if m.code in templates)
    grouped = {key: count for key, count in counts.items() if count >= 2}
    if not grouped:
        return list(errors)

    result = [m for m in errors if (m.code, m.pointer) not in grouped]
    for code, template in templates.items():
        for (group_code, pointer), count in grouped.items():
            if group_code != code:
                continue
            result.append(
                Message(
                    code=code,
                    pointer=pointer,
                    severity=SEVERITY_ERROR,
                    message=template.replace("{count}", str(count)),
                    aggregated=True,
                    count=count,
                )
            )
    return result


class ReportNormalizer:
    """生レポートを表示用に正規化する。レジストリは読み取り専用で参照する。"""

    def __init__(
        self,
        registry: Sequence[GeneratorEntry],
        aggregated_codes: Mapping[str, str] | None = None,
    ) -> None:
        self._registry = tuple(registry)
        self._aggregated_codes = dict(DEFAULT_AGGREGATED_CODES if aggregated_codes is None else aggregated_codes)

    def normalize(self, raw: RawReport) -> NormalizedReport:
        """生レポートから正規化済みレポートを新たに作る。生レポートは変更しない。"""
        generator_id = raw.info.generator or ""
        buckets = partition_messages(raw.issues.messages)
        buckets["errors"] = aggregate_messages(buckets["errors"], self._aggregated_codes)

        return NormalizedReport.model_validate(
            {
                **raw.model_dump(by_alias=True),
                "generator": find_generator(self._registry, generator_id),
                "maxSeverity": max_severity(raw),
                **buckets,
            }
        )
