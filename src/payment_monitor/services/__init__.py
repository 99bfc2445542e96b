"""Backend services for the Stripe failed payments monitor.

Modules:
- activity_log: bounded in-memory activity log
- ssm_service: optional secret source (AWS SSM Parameter Store)
- stripe_service: webhook verification and customer lookup
- gmail_service: alert email delivery
- airtable_service: failed payment records
- pipeline: failed payment processing
- webhook_handler: Stripe event intake and classification
"""
