"""ベースDTOクラス

すべてのエンティティDTOの基底クラスを提供
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class BaseDTO:
    """ベースDTOクラス

    - dataclass(frozen=True): イミュータブルな値オブジェクト
    - 共通フィールドの定義
    - コレクションはtupleで保持し、共有しても変更されない
    """

    id: str
    created_at: datetime
    updated_at: datetime
