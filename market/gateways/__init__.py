from market.gateways.flip import FlipClient
from market.gateways.midtrans import MidtransSnapClient
from market.gateways.xendit import XenditClient

__all__ = ["FlipClient", "MidtransSnapClient", "XenditClient"]
