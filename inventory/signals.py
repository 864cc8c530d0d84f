# Record opening stock in the ledger when a tracked product is created
from django.db.models.signals import post_save
from django.dispatch import receiver

from .models import Product
from .services import record_initial_stock


@receiver(post_save, sender=Product)
def record_initial_stock_on_create(sender, instance, created, raw=False, **kwargs):
    """Write an 'initial' history row for new tracked products with stock"""
    if raw or not created:
        return
    if instance.track_stock and instance.stock_quantity > 0:
        record_initial_stock(instance)
