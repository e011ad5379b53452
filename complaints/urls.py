from django.urls import path

from . import views

app_name = 'complaints'

urlpatterns = [
    path('', views.ComplaintListCreateView.as_view(), name='list-create'),
    path('<uuid:pk>/', views.ComplaintDetailView.as_view(), name='detail'),
    path('<uuid:pk>/status/', views.ComplaintStatusView.as_view(), name='status'),
    path('<uuid:pk>/verify/', views.ComplaintVerifyView.as_view(), name='verify'),
    path('<uuid:pk>/remarks/', views.ComplaintRemarkView.as_view(), name='remarks'),
]
