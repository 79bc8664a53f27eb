"""Usage domain: per-day counters gating free-tier image analysis and video upload.

Use Inject(UsageCountersProtocol) in FastAPI endpoints for the singleton counters.
Renewals reach the counters through SubscriptionService after commit.
"""
