from django.urls import path, re_path

from modules.accounts import views

app_name = "accounts"

urlpatterns = [
    path("", views.root, name="root"),
    path("login", views.login_landing, name="login"),
    path("auth/complete-profile", views.complete_profile_landing, name="complete_profile"),
    re_path(r"^admin-portal(?:/.*)?$", views.portal_home, {"portal": "admin"}, name="admin_portal"),
    re_path(r"^retail(?:/.*)?$", views.portal_home, {"portal": "retail"}, name="retail_portal"),
    re_path(r"^driver(?:/.*)?$", views.portal_home, {"portal": "driver"}, name="driver_portal"),
]
