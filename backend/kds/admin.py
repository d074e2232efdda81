from django.contrib import admin
from django.utils.html import format_html

from .models import KitchenTicket, TicketStatus


@admin.register(KitchenTicket)
class KitchenTicketAdmin(admin.ModelAdmin):
    list_display = [
        'label',
        'quantity',
        'destination',
        'order_number_display',
        'status_indicator',
        'is_urgent',
        'sent_at',
    ]
    list_filter = ['destination', 'status', 'is_urgent', 'sent_at']
    search_fields = ['label', 'annotation', 'order__order_number']
    readonly_fields = ['sent_at', 'started_at', 'ready_at', 'served_at', 'voided_at']
    ordering = ['-sent_at']

    def order_number_display(self, obj):
        return obj.order.order_number
    order_number_display.short_description = 'Order'

    def status_indicator(self, obj):
        colors = {
            TicketStatus.PENDING: '#f59e0b',
            TicketStatus.PREPARING: '#3b82f6',
            TicketStatus.READY: '#10b981',
            TicketStatus.SERVED: '#6b7280',
            TicketStatus.VOIDED: '#ef4444',
        }
        return format_html(
            '<span style="color: {};">{}</span>',
            colors.get(obj.status, '#000'),
            obj.get_status_display(),
        )
    status_indicator.short_description = 'Status'
