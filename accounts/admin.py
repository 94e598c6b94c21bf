"""
Admin configuration for accounts app
"""
from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.contrib.auth.forms import UserCreationForm, ReadOnlyPasswordHashField
from django import forms
from .models import User


def _validate_student_fields(cleaned_data):
    if cleaned_data.get('role') == User.ROLE_STUDENT and not cleaned_data.get('grade'):
        raise forms.ValidationError({'grade': 'Students need a grade.'})


class UserAdminForm(forms.ModelForm):
    """Change form; password is shown as hash only. Use the "Change password" link to set it."""
    password = ReadOnlyPasswordHashField(label='Password')

    class Meta:
        model = User
        fields = '__all__'

    def clean(self):
        cleaned = super().clean()
        _validate_student_fields(cleaned)
        return cleaned


class UserAddForm(UserCreationForm):
    class Meta(UserCreationForm.Meta):
        model = User
        fields = ('email', 'name', 'surname', 'role', 'grade', 'class_name', 'number')

    def clean(self):
        cleaned = super().clean()
        _validate_student_fields(cleaned)
        return cleaned


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Custom User Admin"""
    form = UserAdminForm
    add_form = UserAddForm
    list_display = ['email', 'name', 'surname', 'role', 'grade', 'class_name', 'number', 'is_active']
    list_filter = ['role', 'grade', 'is_active', 'is_staff']
    search_fields = ['email', 'name', 'surname', 'nickname']
    ordering = ['-date_joined']

    fieldsets = (
        (None, {'fields': ('email', 'password')}),
        ('Personal Info', {'fields': ('name', 'surname', 'nickname', 'role')}),
        ('Class', {'fields': ('grade', 'class_name', 'number')}),
        ('Permissions', {'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions')}),
        ('Important dates', {'fields': ('last_login', 'date_joined', 'updated_at')}),
    )

    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'name', 'surname', 'role', 'grade', 'class_name', 'number', 'password1', 'password2'),
        }),
    )

    readonly_fields = ['date_joined', 'updated_at', 'last_login']
