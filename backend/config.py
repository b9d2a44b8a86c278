# backend/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    DATABASE_URL: str = "sqlite:///./storefront.db"

    # One-time passcodes sent by email
    OTP_EXPIRE_MINUTES: int = 10

    # Transactional email API (Resend-compatible); empty key disables delivery
    RESEND_API_URL: str = "https://api.resend.com"
    RESEND_API_KEY: str = ""
    MAIL_FROM: str = "Storefront <onboarding@resend.dev>"

    FRONTEND_URL: str = "http://localhost:5173"

    # "client" keeps the price the cart was built with, "catalog" re-reads it from the product row
    ORDER_PRICE_POLICY: Literal["client", "catalog"] = "client"

    model_config = SettingsConfigDict(env_file=str(env_path), extra="ignore")

settings = Settings()
