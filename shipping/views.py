from django.http import JsonResponse
from django.views.decorators.http import require_GET

from .districts import DistrictCatalogCache, shipping_quote
from .matching import CityMatcher, resolve

SEARCH_LIMIT = 50


def _entry_json(entry, score=None):
    data = entry.to_dict()
    data["label"] = entry.label
    if score is not None:
        data["score"] = score
    return data


@require_GET
def district_list(request):
    """
    District catalog lookups for the checkout form.

    ``?id=`` one district, ``?city=`` the districts of a city,
    ``?search=`` substring search, nothing: the full catalog.
    """
    catalog = DistrictCatalogCache().snapshot()

    district_id = request.GET.get("id")
    if district_id:
        entry = catalog.get(district_id)
        if entry is None:
            return JsonResponse({"success": False, "message": "District not found"}, status=404)
        return JsonResponse({"success": True, "data": _entry_json(entry)})

    city = (request.GET.get("city") or "").strip()
    if city:
        entries = catalog.by_city.get(city)
        if not entries:
            match = resolve(city, catalog)
            entries = catalog.by_city.get(match.district.city, []) if match else []
        return JsonResponse({"success": True, "data": [_entry_json(e) for e in entries]})

    search = (request.GET.get("search") or "").strip()
    if search:
        entries = catalog.search(search, limit=SEARCH_LIMIT)
        return JsonResponse({"success": True, "data": [_entry_json(e) for e in entries]})

    return JsonResponse(
        {
            "success": True,
            "data": [_entry_json(e) for e in catalog],
            "cities": catalog.cities,
            "total": len(catalog),
            "updated_at": catalog.updated_at,
        }
    )


@require_GET
def district_suggestions(request):
    query = request.GET.get("q") or ""
    matcher = CityMatcher(DistrictCatalogCache().snapshot())
    suggestions = matcher.suggest(query)
    return JsonResponse(
        {
            "success": True,
            "data": [_entry_json(m.district, score=m.score) for m in suggestions],
        }
    )


@require_GET
def district_quote(request):
    catalog = DistrictCatalogCache().snapshot()
    quote = shipping_quote(catalog, request.GET.get("district_id"))
    return JsonResponse(
        {
            "success": True,
            "data": {
                "price": str(quote["price"]),
                "delivery_estimate": quote["delivery_estimate"],
                "found": quote["found"],
            },
        }
    )
