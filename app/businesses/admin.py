"""Admin configuration for businesses."""

from django.contrib import admin

from businesses.models import Business


@admin.register(Business)
class BusinessAdmin(admin.ModelAdmin):
    list_display = ["name", "owner_phone", "owner_email", "created_at"]
    search_fields = ["name", "owner_email", "owner_phone"]
    readonly_fields = ["id", "created_at", "updated_at"]
    ordering = ["name"]
