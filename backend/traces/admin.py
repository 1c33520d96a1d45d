from django.contrib import admin

from traces.models import Span, Trace


@admin.register(Trace)
class TraceAdmin(admin.ModelAdmin):
    list_display = ("id", "project", "name", "status", "start_time", "duration")
    list_filter = ("status",)
    search_fields = ("id", "name")


@admin.register(Span)
class SpanAdmin(admin.ModelAdmin):
    list_display = ("id", "trace", "parent_span_id", "name", "status", "duration")
    list_filter = ("status",)
    search_fields = ("id", "name")
