from gallery_billing.models.profile import Profile
from gallery_billing.models.billing import (
    Payment,
    PaymentHistory,
    Subscription,
)
