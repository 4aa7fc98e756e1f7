"""
Configuration Schemas.

Pydantic models defining the expected structure of each YAML config file.
Used by AppConfig to validate configuration at load time. If a YAML file
has missing keys, wrong types, or unknown fields, a clear ValidationError
is raised at startup instead of a cryptic KeyError deep in application code.

Each top-level class corresponds to one file in config/settings/:
    ApplicationSchema    → application.yaml
    DatabaseSchema       → database.yaml
    LoggingSchema        → logging.yaml
    FeaturesSchema       → features.yaml
    SecuritySchema       → security.yaml
    ObservabilitySchema  → observability.yaml
    ConcurrencySchema    → concurrency.yaml
    StorageSchema        → storage.yaml
    MailSchema           → mail.yaml
    ContentSchema        → content.yaml
    SiteSchema           → site.yaml
"""

from pydantic import BaseModel, ConfigDict


class _StrictBase(BaseModel):
    """Base with extra='forbid' so unknown YAML keys are caught immediately."""

    model_config = ConfigDict(extra="forbid")


# =============================================================================
# application.yaml
# =============================================================================


class ServerSchema(_StrictBase):
    host: str
    port: int


class CorsSchema(_StrictBase):
    origins: list[str]


class PaginationSchema(_StrictBase):
    default_limit: int
    max_limit: int


class ApplicationSchema(_StrictBase):
    name: str
    version: str
    description: str
    environment: str
    debug: bool
    api_prefix: str
    docs_enabled: bool
    server: ServerSchema
    cors: CorsSchema
    pagination: PaginationSchema


# =============================================================================
# database.yaml
# =============================================================================


class BrokerSchema(_StrictBase):
    queue_name: str
    result_expiry_seconds: int


class RedisSchema(_StrictBase):
    host: str
    port: int
    db: int
    broker: BrokerSchema


class DatabaseSchema(_StrictBase):
    host: str
    port: int
    name: str
    user: str
    pool_size: int
    max_overflow: int
    pool_timeout: int
    pool_recycle: int
    echo: bool
    echo_pool: bool
    redis: RedisSchema


# =============================================================================
# logging.yaml
# =============================================================================


class ConsoleHandlerSchema(_StrictBase):
    enabled: bool


class FileHandlerSchema(_StrictBase):
    enabled: bool
    path: str
    max_bytes: int
    backup_count: int


class HandlersSchema(_StrictBase):
    console: ConsoleHandlerSchema
    file: FileHandlerSchema


class LoggingSchema(_StrictBase):
    level: str
    format: str
    handlers: HandlersSchema


# =============================================================================
# features.yaml
# =============================================================================


class FeaturesSchema(_StrictBase):
    security_startup_checks_enabled: bool
    security_headers_enabled: bool
    auth_rate_limit_enabled: bool
    api_detailed_errors: bool
    api_request_logging: bool
    content_file_news_enabled: bool
    content_scheduled_publishing_enabled: bool
    media_thumbnails_enabled: bool
    contact_form_enabled: bool


# =============================================================================
# security.yaml
# =============================================================================


class SessionCookieSchema(_StrictBase):
    cookie_name: str
    max_age_days: int
    secure: bool
    same_site: str


class LoginLockoutSchema(_StrictBase):
    max_failed_attempts: int
    lockout_minutes: int


class ScopeRateLimitSchema(_StrictBase):
    requests_per_minute: int
    requests_per_hour: int


class RateLimitingSchema(_StrictBase):
    login: ScopeRateLimitSchema
    contact: ScopeRateLimitSchema


class RequestLimitsSchema(_StrictBase):
    max_body_size_bytes: int


class SecurityHeadersSchema(_StrictBase):
    x_content_type_options: str
    x_frame_options: str
    x_xss_protection: str
    referrer_policy: str
    content_security_policy: str
    hsts_enabled: bool
    hsts_max_age: int


class SecretsValidationSchema(_StrictBase):
    db_password_min_length: int


class CorsEnforcementSchema(_StrictBase):
    enforce_in_production: bool
    allow_methods: list[str]
    allow_headers: list[str]


class SecuritySchema(_StrictBase):
    session: SessionCookieSchema
    login: LoginLockoutSchema
    rate_limiting: RateLimitingSchema
    request_limits: RequestLimitsSchema
    headers: SecurityHeadersSchema
    secrets_validation: SecretsValidationSchema
    cors: CorsEnforcementSchema


# =============================================================================
# observability.yaml
# =============================================================================


class HealthChecksSchema(_StrictBase):
    ready_timeout_seconds: int
    detailed_auth_required: bool


class ObservabilitySchema(_StrictBase):
    health_checks: HealthChecksSchema


# =============================================================================
# concurrency.yaml
# =============================================================================


class ThreadPoolSchema(_StrictBase):
    max_workers: int


class SemaphoresSchema(_StrictBase):
    smtp: int
    image_processing: int


class ConcurrencySchema(_StrictBase):
    thread_pool: ThreadPoolSchema
    semaphores: SemaphoresSchema


# =============================================================================
# storage.yaml
# =============================================================================


class ThumbnailSchema(_StrictBase):
    width: int
    height: int
    quality: int
    prefix: str


class StorageSchema(_StrictBase):
    upload_dir: str
    public_url_prefix: str
    max_file_size_bytes: int
    thumbnail: ThumbnailSchema
    allowed_types: dict[str, list[str]]


# =============================================================================
# mail.yaml
# =============================================================================


class SmtpSchema(_StrictBase):
    host: str
    port: int
    use_tls: bool
    timeout_seconds: int


class MailCircuitBreakerSchema(_StrictBase):
    fail_max: int
    timeout_duration: int


class MailRetrySchema(_StrictBase):
    max_attempts: int
    backoff_multiplier: int
    backoff_max: int


class MailSchema(_StrictBase):
    smtp: SmtpSchema
    from_address: str
    contact_recipient: str
    subject_prefix: str
    timezone: str
    circuit_breaker: MailCircuitBreakerSchema
    retry: MailRetrySchema


# =============================================================================
# content.yaml
# =============================================================================


class NewsSchema(_StrictBase):
    directory: str
    cache_ttl_seconds: int


class ContentSchema(_StrictBase):
    posts_per_page: int
    admin_page_size: int
    related_posts: int
    words_per_minute: int
    news: NewsSchema


# =============================================================================
# site.yaml
# =============================================================================


class SiteContactSchema(_StrictBase):
    email: str
    phone: str
    address: str


class NavItemSchema(_StrictBase):
    label: str
    href: str


class SitemapEntrySchema(_StrictBase):
    path: str
    priority: float
    changefreq: str


class SiteSchema(_StrictBase):
    name: str
    full_name: str
    description: str
    url: str
    locale: str
    contact: SiteContactSchema
    navigation: list[NavItemSchema]
    social: dict[str, str]
    sitemap: list[SitemapEntrySchema]
