from advisor.notify.dispatcher import DiscordDispatcher, NotificationDispatcher, format_alert

__all__ = ["DiscordDispatcher", "NotificationDispatcher", "format_alert"]
