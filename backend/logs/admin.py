from django.contrib import admin

from logs.models import Log, LogMetadata, Metadata


@admin.register(Log)
class LogAdmin(admin.ModelAdmin):
    list_display = ("id", "project", "level", "timestamp")
    list_filter = ("level",)
    search_fields = ("id", "message")


@admin.register(Metadata)
class MetadataAdmin(admin.ModelAdmin):
    list_display = ("id", "project", "key", "value")
    list_filter = ("key",)
    search_fields = ("key", "value")


@admin.register(LogMetadata)
class LogMetadataAdmin(admin.ModelAdmin):
    list_display = ("id", "log", "metadata")
