"""
商品明细模型 - 表格字段的数据来源

约定（由录入方保证，核心模块只在边界校验）：
- amount == round(quantity * price, 2)
- total == sum(items[i].amount)
- items 顺序即录入顺序，所有输出按此顺序
"""

from __future__ import annotations

import uuid

from pydantic import BaseModel, Field, model_validator

# 合计校验容差（金额保留两位小数）
TOTAL_TOLERANCE = 0.005


class LineItem(BaseModel):
    """商品明细行"""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex, description="录入方分配的行标识")
    name: str = ""
    model: str = ""
    unit: str = "个"
    quantity: float = 1
    price: float = 0
    amount: float = 0
    remark: str = ""

    @classmethod
    def create(
        cls,
        name: str,
        quantity: float,
        price: float,
        *,
        model: str = "",
        unit: str = "个",
        remark: str = "",
        id: str | None = None,
    ) -> LineItem:
        """按数量×单价计算金额（保留两位小数）"""
        data = {
            "name": name,
            "model": model,
            "unit": unit,
            "quantity": quantity,
            "price": price,
            "amount": round(quantity * price, 2),
            "remark": remark,
        }
        if id is not None:
            data["id"] = id
        return cls(**data)


class TableData(BaseModel):
    """商品表格数据"""

    items: list[LineItem] = Field(default_factory=list)
    total: float = 0

    @model_validator(mode="after")
    def _check_total(self) -> TableData:
        expected = sum(item.amount for item in self.items)
        if abs(expected - self.total) > TOTAL_TOLERANCE:
            raise ValueError(f"合计金额不一致: total={self.total}, 明细合计={expected}")
        return self

    @classmethod
    def from_items(cls, items: list[LineItem]) -> TableData:
        """由明细计算合计"""
        return cls(items=list(items), total=round(sum(item.amount for item in items), 2))
