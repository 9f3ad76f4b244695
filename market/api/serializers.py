"""
Dict representations of ORM rows for JSON responses.

Decimal, UUID and datetime values are left as-is; ``JsonResponse`` renders
them with ``DjangoJSONEncoder``.
"""
from __future__ import annotations

from market.infra.models import (
    MessageORM,
    NotificationORM,
    ProductORM,
    TransactionORM,
    UserORM,
    WishlistORM,
    WithdrawalORM,
)
from market.infra.pii_masker import mask_account_number


def user_to_dict(user: UserORM) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "whatsapp": user.whatsapp,
        "phone": user.phone,
        "role": user.role,
        "withdrawal_method": user.withdrawal_method,
        "withdrawal_account": user.withdrawal_account,
        "withdrawal_name": user.withdrawal_name,
        "created_at": user.created_at,
    }


def product_to_dict(product: ProductORM, include_seller: bool = True) -> dict:
    data = {
        "id": product.id,
        "title": product.title,
        "description": product.description,
        "price": product.price,
        "image_url": product.image_url,
        "condition": product.condition,
        "category": product.category,
        "is_sold": product.is_sold,
        "user_id": product.seller_id,
        "created_at": product.created_at,
        "updated_at": product.updated_at,
    }
    if include_seller:
        data["seller"] = {
            "id": product.seller.id,
            "name": product.seller.name,
            "whatsapp": product.seller.whatsapp,
        }
    return data


def wishlist_to_dict(entry: WishlistORM) -> dict:
    return {
        "id": entry.id,
        "product_id": entry.product_id,
        "created_at": entry.created_at,
        "product": product_to_dict(entry.product),
    }


def message_to_dict(message: MessageORM, with_names: bool = False) -> dict:
    data = {
        "id": message.id,
        "product_id": message.product_id,
        "sender_id": message.sender_id,
        "receiver_id": message.receiver_id,
        "message": message.message,
        "is_read": message.is_read,
        "created_at": message.created_at,
    }
    if with_names:
        data["sender"] = {"name": message.sender.name}
        data["receiver"] = {"name": message.receiver.name}
    return data


def notification_to_dict(notification: NotificationORM) -> dict:
    return {
        "id": notification.id,
        "type": notification.type,
        "title": notification.title,
        "body": notification.body,
        "link": notification.link,
        "is_read": notification.is_read,
        "created_at": notification.created_at,
    }


def transaction_to_dict(transaction: TransactionORM, include_product: bool = True) -> dict:
    data = {
        "id": transaction.id,
        "order_id": transaction.order_id,
        "product_id": transaction.product_id,
        "buyer_id": transaction.buyer_id,
        "seller_id": transaction.seller_id,
        "amount": transaction.amount,
        "status": transaction.status,
        "gateway": transaction.gateway,
        "gateway_status": transaction.gateway_status,
        "redirect_url": transaction.snap_redirect_url or transaction.flip_payment_url,
        "seller_payment_status": transaction.seller_payment_status,
        "seller_payment_amount": transaction.seller_payment_amount,
        "created_at": transaction.created_at,
        "updated_at": transaction.updated_at,
    }
    if include_product:
        data["product"] = product_to_dict(transaction.product, include_seller=False)
    return data


def withdrawal_to_dict(withdrawal: WithdrawalORM, include_user: bool = False) -> dict:
    data = {
        "id": withdrawal.id,
        "user_id": withdrawal.user_id,
        "amount": withdrawal.amount,
        "status": withdrawal.status,
        "withdrawal_method": withdrawal.withdrawal_method,
        "withdrawal_account": mask_account_number(withdrawal.withdrawal_account),
        "withdrawal_name": withdrawal.withdrawal_name,
        "gateway": withdrawal.gateway,
        "disbursement_status": withdrawal.disbursement_status,
        "processed_at": withdrawal.processed_at,
        "created_at": withdrawal.created_at,
    }
    if include_user:
        data["withdrawal_account"] = withdrawal.withdrawal_account
        data["user"] = {"name": withdrawal.user.name, "email": withdrawal.user.email}
    return data
