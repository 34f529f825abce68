from rest_framework import serializers
from .models import Store

WHATSAPP_REGEX = r'^\+?[1-9]\d{1,14}$'
HEX_COLOR_REGEX = r'^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$'


class StoreSerializer(serializers.ModelSerializer):
    primary_color = serializers.RegexField(HEX_COLOR_REGEX, required=False)
    secondary_color = serializers.RegexField(HEX_COLOR_REGEX, required=False)
    whatsapp_primary = serializers.RegexField(WHATSAPP_REGEX, required=False, allow_null=True, allow_blank=True)
    whatsapp_secondary = serializers.RegexField(WHATSAPP_REGEX, required=False, allow_null=True, allow_blank=True)

    class Meta:
        model = Store
        fields = ['id', 'name', 'slug', 'logo_url', 'primary_color', 'secondary_color', 'border_radius',
                  'whatsapp_primary', 'whatsapp_secondary', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['slug', 'is_active', 'created_at', 'updated_at']
