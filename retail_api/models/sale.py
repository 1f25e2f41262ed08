"""Retail sale model module."""
from datetime import date, time
from decimal import Decimal
from typing import Optional

from sqlalchemy import Date, Integer, Numeric, String, Time
from sqlalchemy.ext.hybrid import hybrid_property
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql.elements import ColumnElement

from retail_api.database.database import Base


class RetailSale(Base):
    """One retail sale line item.

    Required fields are nullable at the store level: rows written by other
    tools may arrive incomplete and stay until the cleaning pass removes them.
    """

    __tablename__ = "retail_sales"

    transaction_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    sale_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True, index=True)
    sale_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    customer_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    gender: Mapped[Optional[str]] = mapped_column(String(15), nullable=True)
    age: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(15), nullable=True, index=True)
    quantity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    price_per_unit: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    cogs: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)

    @hybrid_property
    def total_sale(self) -> Optional[Decimal]:
        """quantity * price_per_unit, never stored on its own."""
        if self.quantity is None or self.price_per_unit is None:
            return None
        return self.quantity * self.price_per_unit

    @total_sale.inplace.expression
    @classmethod
    def _total_sale_expression(cls) -> ColumnElement[Decimal]:
        return cls.quantity * cls.price_per_unit

    def __repr__(self) -> str:
        return f"<RetailSale {self.transaction_id} {self.sale_date} {self.category}>"
