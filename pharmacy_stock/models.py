from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, DateTime, Float, ForeignKey, UniqueConstraint, Index
)
from sqlalchemy.orm import relationship

from .database import Base


# -------------------------
# Masters
# -------------------------
class Item(Base):
    __tablename__ = "item_master"

    id = Column(Integer, primary_key=True, index=True)
    item_code = Column(String(100), unique=True, nullable=False, index=True)
    item_name = Column(String(255), nullable=False)
    manufacturer = Column(String(255), default="", nullable=False)
    vendor = Column(String(255), default="", nullable=False)
    item_type = Column(String(100), default="", nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    ledger_rows = relationship("StockLedger", back_populates="item")


class Department(Base):
    __tablename__ = "departments"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False, index=True)
    # Refreshed on every successful update pass for the department
    last_updated = Column(DateTime, nullable=True)

    ledger_rows = relationship("StockLedger", back_populates="department")


# -------------------------
# Ledger
# -------------------------
class StockLedger(Base):
    """
    One row per (item, department, as-of date).
    stock_used = stock_sold + stock_transferred
    stock_left = initial_stock - stock_used  (can be negative)
    """

    __tablename__ = "stock_ledger"
    __table_args__ = (
        UniqueConstraint("item_id", "department_id", "as_of_date", name="uq_stock_ledger_item_dept_date"),
        Index("ix_stock_ledger_dept_date", "department_id", "as_of_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(Integer, ForeignKey("item_master.id"), nullable=False, index=True)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=False, index=True)
    # Naive UTC, always 12:00
    as_of_date = Column(DateTime, nullable=False, index=True)

    initial_stock = Column(Float, default=0, nullable=False)
    stock_sold = Column(Float, default=0, nullable=False)
    stock_transferred = Column(Float, default=0, nullable=False)
    stock_used = Column(Float, default=0, nullable=False)
    stock_left = Column(Float, default=0, nullable=False)

    item = relationship("Item", back_populates="ledger_rows")
    department = relationship("Department", back_populates="ledger_rows")


# -------------------------
# Saved reorder analyses
# -------------------------
class ReorderAnalysis(Base):
    __tablename__ = "reorder_analyses"

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    surplus_percentage = Column(Float, nullable=False)

    items = relationship(
        "ReorderAnalysisItem",
        back_populates="analysis",
        cascade="all, delete-orphan",
        order_by="ReorderAnalysisItem.id",
    )


class ReorderAnalysisItem(Base):
    __tablename__ = "reorder_analysis_items"

    id = Column(Integer, primary_key=True, index=True)
    analysis_id = Column(Integer, ForeignKey("reorder_analyses.id"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("item_master.id"), nullable=False)
    item_code = Column(String(100), nullable=False)
    item_name = Column(String(255), nullable=False)
    manufacturer = Column(String(255), default="", nullable=False)
    vendor = Column(String(255), default="", nullable=False)
    stock_left = Column(Float, nullable=False)
    stock_used = Column(Float, nullable=False)
    reorder_quantity = Column(Integer, nullable=False)

    analysis = relationship("ReorderAnalysis", back_populates="items")
