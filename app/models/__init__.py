from .account import Account, Base  # noqa: F401  → registers the tables on Base.metadata
from .magic_code import MagicCode  # noqa: F401
from .session import AppSession  # noqa: F401
from .subscription import AccountSubscription, PaddleWebhookEvent  # noqa: F401
