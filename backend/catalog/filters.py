import django_filters
from django.db.models import Q
from .models import Product


class ProductFilter(django_filters.FilterSet):
    """Filter for the admin product list"""

    search = django_filters.CharFilter(method='filter_search', label='Search')
    brand = django_filters.CharFilter(field_name='brand', lookup_expr='iexact')
    category = django_filters.CharFilter(field_name='category', lookup_expr='iexact')
    available = django_filters.BooleanFilter(field_name='is_available')

    # Stock status filters
    in_stock = django_filters.BooleanFilter(method='filter_in_stock', label='In Stock')
    out_of_stock = django_filters.BooleanFilter(method='filter_out_of_stock', label='Out of Stock')

    class Meta:
        model = Product
        fields = ['search', 'brand', 'category', 'available', 'in_stock', 'out_of_stock']

    def filter_search(self, queryset, name, value):
        """Match every word against name, brand or category"""
        if not value or not value.strip():
            return queryset
        for word in value.split():
            queryset = queryset.filter(
                Q(name__icontains=word) | Q(brand__icontains=word) | Q(category__icontains=word)
            )
        return queryset

    def filter_in_stock(self, queryset, name, value):
        if value:
            return queryset.filter(stock_quantity__gt=0)
        return queryset

    def filter_out_of_stock(self, queryset, name, value):
        # Negative stock counts as out of stock
        if value:
            return queryset.filter(stock_quantity__lte=0)
        return queryset
