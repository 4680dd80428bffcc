# backend/clubpos/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/clubpos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///clubpos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Display currency code for receipts and CLI output
    CLUB_CURRENCY = os.environ.get("CLUB_CURRENCY", "SAR")

    # Simulated card/cash processing wait before a transaction is committed
    PAYMENT_PROCESSING_DELAY_SECONDS = float(
        os.environ.get("PAYMENT_PROCESSING_DELAY_SECONDS", "0.5")
    )
