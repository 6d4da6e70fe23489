from storefront.services.filters import DEFAULT_LIMIT, MAX_LIMIT, group_query_items, parse_filter_params


def test_empty_params_use_defaults():
    filters = parse_filter_params({})
    assert filters.search is None
    assert filters.brand_slugs == []
    assert filters.attribute_filters == {}
    assert filters.sort == "newest"
    assert filters.page == 1
    assert filters.limit == DEFAULT_LIMIT


def test_slug_lists_accept_plain_and_bracketed_keys():
    params = group_query_items([("brand", "Nike"), ("brand[]", "adidas"), ("gender", "MEN"), ("category[]", "shoes")])
    filters = parse_filter_params(params)
    assert filters.brand_slugs == ["nike", "adidas"]
    assert filters.gender_slugs == ["men"]
    assert filters.category_slugs == ["shoes"]


def test_search_is_trimmed_and_blank_dropped():
    assert parse_filter_params({"search": "  runner  "}).search == "runner"
    assert parse_filter_params({"search": "   "}).search is None


def test_unknown_keys_and_legacy_size_color_become_attribute_filters():
    params = group_query_items([("material[]", "Cotton"), ("size", "M"), ("size", "L"), ("color", "Red")])
    filters = parse_filter_params(params)
    assert filters.attribute_filters == {"material": ["cotton"], "size": ["m", "l"], "color": ["red"]}


def test_price_ranges_drop_non_numeric_bounds():
    filters = parse_filter_params({"price": ["0-50", "100-", "abc-xyz", "20-abc"], "priceMin": "5", "priceMax": "x"})
    assert filters.price_ranges == [(0.0, 50.0), (100.0, None), (20.0, None)]
    assert filters.price_min == 5.0
    assert filters.price_max is None


def test_sort_page_and_limit_are_normalized():
    filters = parse_filter_params({"sort": "bogus", "page": "-3", "limit": "500"})
    assert filters.sort == "newest"
    assert filters.page == 1
    assert filters.limit == MAX_LIMIT

    filters = parse_filter_params({"sort": "price_asc", "page": "3", "limit": "10"})
    assert filters.sort == "price_asc"
    assert filters.offset == 20

    filters = parse_filter_params({"page": "inf", "limit": "1e999"})
    assert filters.page == 1
    assert filters.limit == DEFAULT_LIMIT
