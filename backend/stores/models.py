from django.db import models


class Store(models.Model):
    """Tenant store: owns products, orders and the public catalog theme"""
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=100, unique=True)
    logo_url = models.URLField(blank=True, null=True)
    # Legacy brand fields, kept in sync with catalog_config on theme save
    primary_color = models.CharField(max_length=7, default='#0f172a')
    secondary_color = models.CharField(max_length=7, default='#64748b')
    border_radius = models.CharField(max_length=20, default='0.5rem')
    whatsapp_primary = models.CharField(max_length=20, blank=True, null=True)
    whatsapp_secondary = models.CharField(max_length=20, blank=True, null=True)
    catalog_config = models.JSONField(default=dict, blank=True)
    catalog_config_updated_at = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    class Meta:
        db_table = 'stores'
        ordering = ['name']
