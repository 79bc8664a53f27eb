"""Billing domain: webhook reconciliation and the subscription lifecycle.

Use Inject(BillingWebhookProtocol) for the webhook processor and
Inject(SubscriptionServiceProtocol) for user actions and the status query.
"""
