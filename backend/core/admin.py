from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, AuditLog


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['username', 'email', 'first_name', 'last_name', 'store', 'role', 'is_active', 'date_joined']
    list_filter = ['is_active', 'role', 'store', 'date_joined']
    search_fields = ['username', 'email', 'first_name', 'last_name']
    ordering = ['username']
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Store', {'fields': ('phone', 'store', 'role')}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Store', {'fields': ('phone', 'store', 'role')}),
    )


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['user', 'store', 'action', 'model_name', 'object_id', 'ip_address', 'created_at']
    list_filter = ['action', 'model_name', 'created_at']
    search_fields = ['user__username', 'model_name', 'object_id']
    ordering = ['-created_at']
    readonly_fields = ['user', 'store', 'action', 'model_name', 'object_id', 'changes', 'ip_address', 'created_at']
