from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./woodkits.db"
    ENVIRONMENT: str = "development"
    COMPANY_NAME: str = "Wood Kits"
    COMPANY_EMAIL: str = "info@woodkits.com"
    COMPANY_PHONE: str = ""

    # Orders
    DEFAULT_CURRENCY: str = "NIS"
    TAX_RATE: float = 0.17  # Israeli VAT
    ESTIMATED_DELIVERY_DAYS: int = 14

    # Admin auth
    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD: str = ""  # Admin account is only seeded when set
    JWT_SECRET: str = ""  # required in production; auth fails with 500 when unset
    JWT_ALGORITHM: str = "HS256"
    ADMIN_SESSION_HOURS: int = 24

    # Stripe
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    STRIPE_API_BASE: str = "https://api.stripe.com/v1"
    STRIPE_WEBHOOK_TOLERANCE_SECONDS: int = 300

    # SendGrid
    SENDGRID_API_KEY: str = ""
    SENDGRID_API_URL: str = "https://api.sendgrid.com/v3/mail/send"
    FROM_EMAIL: str = "info@woodkits.com"
    FROM_NAME: str = "Wood Kits Team"

    # Cloudflare R2. Product images fall back to local uploads/ when unset
    CLOUDFLARE_R2_ACCOUNT_ID: str = ""
    CLOUDFLARE_R2_ACCESS_KEY_ID: str = ""
    CLOUDFLARE_R2_SECRET_ACCESS_KEY: str = ""
    CLOUDFLARE_R2_BUCKET: str = "woodkits-products"

    class Config:
        env_file = ".env"


settings = Settings()
