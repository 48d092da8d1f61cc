import django_filters

from market.models import Listing, ListingCategory, ListingCondition, LocationArea


class ListingFilter(django_filters.FilterSet):
    SORTS = {
        "recent": ("-created_at", "-id"),
        "price_low": ("price", "-id"),
        "price_high": ("-price", "-id"),
        "popular": ("-view_count", "-id"),
    }

    category = django_filters.ChoiceFilter(choices=ListingCategory.choices)
    condition = django_filters.ChoiceFilter(choices=ListingCondition.choices)
    location = django_filters.ChoiceFilter(field_name="location_area", choices=LocationArea.choices)
    min_price = django_filters.NumberFilter(field_name="price", lookup_expr="gte")
    max_price = django_filters.NumberFilter(field_name="price", lookup_expr="lte")
    seller = django_filters.NumberFilter(field_name="seller_id")
    featured = django_filters.BooleanFilter(field_name="is_featured")
    sort = django_filters.ChoiceFilter(
        choices=[(k, k) for k in SORTS],
        method="filter_sort",
        empty_label=None,
    )

    class Meta:
        model = Listing
        fields = ["category", "condition", "location", "min_price", "max_price", "seller", "featured"]

    def filter_sort(self, queryset, name, value):
        return queryset.order_by(*self.SORTS.get(value, self.SORTS["recent"]))
