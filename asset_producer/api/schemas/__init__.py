from asset_producer.api.schemas.notification import DependencyStatus, NotificationSummary

__all__: list[str] = ["DependencyStatus", "NotificationSummary"]
