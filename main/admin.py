from django.contrib import admin
from django.utils.html import format_html
from django.utils.translation import gettext_lazy as _
from django.urls import reverse
from django import forms
from django.contrib.auth.hashers import make_password
from unfold.admin import ModelAdmin
from unfold.decorators import display
from unfold.contrib.filters.admin import RangeDateTimeFilter
from .models import User, Session


class UserAdminForm(forms.ModelForm):
    password = forms.CharField(
        label=_("Password"),
        widget=forms.PasswordInput(attrs={'placeholder': 'Enter password'}),
        help_text=_("Stored hashed."),
        required=False,
    )

    class Meta:
        model = User
        fields = ['username', 'name', 'role', 'password']

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if self.instance and self.instance.pk:
            self.fields['password'].help_text = _("Leave blank to keep the current password.")
            self.fields['password'].widget.attrs['placeholder'] = 'Leave blank to keep current password'
        else:
            self.fields['password'].required = True

    def clean_password(self):
        password = self.cleaned_data.get('password')

        if self.instance.pk and not password:
            return None

        if password and len(password) < 3:
            raise forms.ValidationError(_("Password must be at least 3 characters long."))

        return password

    def save(self, commit=True):
        user = super().save(commit=False)

        password = self.cleaned_data.get('password')
        if password:
            user.password = make_password(password)
        elif user.pk:
            user.password = User.objects.filter(pk=user.pk).values_list('password', flat=True).first()

        if commit:
            user.save()
        return user


@admin.register(User)
class UserAdmin(ModelAdmin):
    form = UserAdminForm
    list_display = ['id', 'username', 'name', 'role_badge', 'last_login_at']
    list_filter = [
        'role',
        ('last_login_at', RangeDateTimeFilter),
    ]
    search_fields = ['username', 'name']
    list_filter_submit = True
    list_fullwidth = True

    fieldsets = (
        (_('Account'), {
            'fields': ('username', 'name'),
            'classes': ['tab'],
        }),
        (_('Access & Security'), {
            'fields': ('role', 'password'),
            'classes': ['tab'],
        }),
    )

    @display(description=_("Role"), label=True)
    def role_badge(self, obj):
        colors = {
            'ADMIN': 'danger',
            'MANAGER': 'warning',
            'INVENTORY': 'success',
        }
        return colors.get(obj.role, 'info'), obj.get_role_display()


@admin.register(Session)
class SessionAdmin(ModelAdmin):
    list_display = ['id', 'user_link', 'ip_address', 'user_agent', 'last_activity']
    list_filter = [
        ('last_activity', RangeDateTimeFilter),
    ]
    search_fields = ['ip_address', 'user_agent']
    list_filter_submit = True
    readonly_fields = ['last_activity']

    @display(description=_("User"))
    def user_link(self, obj):
        if obj.user_id:
            url = reverse('admin:main_user_change', args=[obj.user_id.pk])
            return format_html('<a href="{}">{}</a>', url, obj.user_id)
        return "-"
