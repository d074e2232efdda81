from django.urls import path
from . import views

app_name = 'kds'

urlpatterns = [
    # Station queue (kitchen or bartender)
    path('<str:destination>/tickets/', views.station_tickets, name='station_tickets'),

    # Ticket status changes
    path('tickets/<uuid:ticket_id>/advance/', views.advance_ticket, name='advance_ticket'),
]
