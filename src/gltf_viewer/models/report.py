"""バリデーションレポート関連のデータモデル。

glTF-ValidatorのJSON出力はcamelCaseのため、エイリアスで受け取る。
レポート本体はバリデータ側の形式であり、ここで読むフィールド以外はそのまま保持する。
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# 重大度（バリデータの数値表現と同じ順序）
SEVERITY_ERROR = 0
SEVERITY_WARNING = 1
SEVERITY_INFO = 2
SEVERITY_HINT = 3

SeverityBucket = Literal["errors", "warnings", "infos", "hints"]

# 重大度インデックス順のバケット名
SEVERITY_BUCKETS: tuple[SeverityBucket, ...] = ("errors", "warnings", "infos", "hints")


class _ValidatorModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class Message(_ValidatorModel):
    """バリデータが出力する個別の診断メッセージ。"""

    code: str
    message: str
    severity: int = SEVERITY_ERROR
    pointer: str | None = None
    # 集約により生成された合成メッセージの場合のみ設定される
    aggregated: bool = False
    count: int | None = None


class IssueSummary(_ValidatorModel):
    """診断メッセージと重大度ごとの件数。"""

    num_errors: int = 0
    num_warnings: int = 0
    num_infos: int = 0
    num_hints: int = 0
    messages: list[Message] = Field(default_factory=list)
    truncated: bool = False

    def count_for(self, severity: int) -> int:
        """重大度インデックスに対応する件数を返す。"""
        return (self.num_errors, self.num_warnings, self.num_infos, self.num_hints)[severity]


class ReportInfo(_ValidatorModel):
    """アセット情報。generator以外は表示にのみ使う。"""

    version: str | None = None
    generator: str | None = None


class RawReport(_ValidatorModel):
    """バリデータの生レポート。"""

    uri: str | None = None
    mime_type: str | None = None
    validator_version: str | None = None
    validated_at: str | None = None
    issues: IssueSummary = Field(default_factory=IssueSummary)
    info: ReportInfo = Field(default_factory=ReportInfo)


class GeneratorEntry(BaseModel):
    """ジェネレータレジストリの1エントリ。プロセス全体で共有される読み取り専用データ。"""

    model_config = ConfigDict(frozen=True)

    generator: str
    name: str
    author: str
    description: str | None = None
    link: str | None = None

    @property
    def is_pattern(self) -> bool:
        return "*" in self.generator

    @property
    def display_name(self) -> str:
        """表示用の名前。作者名が異なる場合は「name by author」とする。"""
        if self.name != self.author:
            return f"{self.name} by {self.author}"
        return self.name


class NormalizedReport(RawReport):
    """正規化済みレポート。重大度で分類し、大量の重複エラーを集約したもの。"""

    generator: GeneratorEntry | None = None
    max_severity: int = -1
    errors: list[Message] = Field(default_factory=list)
    warnings: list[Message] = Field(default_factory=list)
    infos: list[Message] = Field(default_factory=list)
    hints: list[Message] = Field(default_factory=list)

    def bucket(self, name: SeverityBucket) -> list[Message]:
        return getattr(self, name)


class ReportException(BaseModel):
    """バリデーション実行中に捕捉された例外。正常なレポートの代わりに表示される。"""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    error: str
    message: str
    level: int = SEVERITY_ERROR
    exception: Any = Field(default=None, exclude=True, repr=False)

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ReportException":
        return cls(error=type(exc).__name__, message=str(exc), exception=exc)


ValidationOutcome = NormalizedReport | ReportException
