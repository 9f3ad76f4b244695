"""
Account routes: register, login, sign out and profile.
"""
from django.conf import settings
from django.http import HttpResponseRedirect, JsonResponse

from market.api import auth
from market.api.auth import api_view, read_json
from market.api.serializers import user_to_dict
from market.services.accounts import AccountService


@api_view(["POST"], auth=None)
def register(request):
    data = read_json(request)
    user = AccountService().register(
        name=data.get("name", ""),
        email=data.get("email", ""),
        password=data.get("password", ""),
        whatsapp=data.get("whatsapp", ""),
    )
    return JsonResponse({"message": "Registration successful", "user": user_to_dict(user)}, status=201)


@api_view(["POST"], auth=None)
def login(request):
    data = read_json(request)
    user = AccountService().authenticate(data.get("email", ""), data.get("password", ""))
    auth.login(request, user)
    return JsonResponse({"user": user_to_dict(user)})


@api_view(["GET", "POST"], auth=None)
def signout(request):
    auth.logout(request)
    return HttpResponseRedirect(settings.SITE_URL)


@api_view(["GET", "PATCH"])
def profile(request, user):
    if request.method == "PATCH":
        user = AccountService().update_profile(user, read_json(request))
    return JsonResponse({"user": user_to_dict(user)})
