from django.urls import path
from . import views

app_name = 'music'

urlpatterns = [
    path('auth/token/', views.AuthTokenView.as_view(), name='auth-token'),
    path('auth/session/', views.AuthSessionView.as_view(), name='auth-session'),
    path('auth/disconnect/', views.AuthDisconnectView.as_view(), name='auth-disconnect'),
    path('auth/status/', views.AuthStatusView.as_view(), name='auth-status'),
    path('now-playing/', views.NowPlayingView.as_view(), name='now-playing'),
    path('scrobble/', views.ScrobbleView.as_view(), name='scrobble'),
    path('history/', views.HistoryView.as_view(), name='history'),
    path('theme/', views.ThemeView.as_view(), name='theme'),
]
