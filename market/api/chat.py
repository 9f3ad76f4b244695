"""
Chat and notification routes.
"""
from django.http import JsonResponse

from market.api.auth import api_view, parse_uuid, read_json
from market.api.serializers import message_to_dict, notification_to_dict
from market.errors import ServiceError
from market.services.chat import ChatService, NotificationService


@api_view(["GET", "POST"])
def chat(request, user):
    service = ChatService()
    if request.method == "POST":
        data = read_json(request)
        if not data.get("productId") or not data.get("receiverId") or not data.get("message"):
            raise ServiceError("Missing required fields")
        msg = service.send_message(
            user,
            parse_uuid(data["productId"], "productId"),
            parse_uuid(data["receiverId"], "receiverId"),
            data["message"],
        )
        return JsonResponse(message_to_dict(msg), status=201)

    if not request.GET.get("productId") or not request.GET.get("userId"):
        raise ServiceError("Missing required parameters")
    messages = service.get_conversation(
        user,
        parse_uuid(request.GET["productId"], "productId"),
        parse_uuid(request.GET["userId"], "userId"),
    )
    return JsonResponse({"messages": [message_to_dict(m, with_names=True) for m in messages]})


@api_view(["GET"])
def chats(request, user):
    return JsonResponse({"chats": ChatService().list_chats(user)})


@api_view(["GET"])
def notifications(request, user):
    service = NotificationService()
    return JsonResponse({
        "notifications": [notification_to_dict(n) for n in service.list_notifications(user)],
        "unread_count": service.unread_count(user),
    })


@api_view(["POST", "DELETE"])
def notification_detail(request, notification_id, user):
    service = NotificationService()
    if request.method == "DELETE":
        service.delete(user, notification_id)
        return JsonResponse({"message": "Notification deleted"})

    notification = service.mark_read(user, notification_id)
    return JsonResponse({"notification": notification_to_dict(notification)})
