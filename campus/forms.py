import re

from django import forms
from django.core.exceptions import ValidationError
from django.utils import timezone

from .models import Booking, Complaint, CustomUser, Department, Facility
from .utils import normalize_hhmm


class LoginForm(forms.Form):
    email = forms.EmailField(widget=forms.EmailInput(attrs={'placeholder': 'Email'}))
    password = forms.CharField(widget=forms.PasswordInput(attrs={'placeholder': 'Password'}))

    def clean_email(self):
        return self.cleaned_data['email'].strip().lower()


class SignupForm(forms.Form):
    full_name = forms.CharField(
        max_length=100,
        error_messages={'required': "Full name is required"},
    )
    email = forms.EmailField(
        error_messages={
            'required': "Email address is required",
            'invalid': "Please enter a valid email address",
        },
    )
    contact = forms.CharField(
        max_length=20,
        error_messages={'required': "Phone number is required"},
    )
    department = forms.ModelChoiceField(
        queryset=Department.objects.all(),
        empty_label="Select Department",
        error_messages={'required': "Department selection is required"},
    )
    password = forms.CharField(
        widget=forms.PasswordInput,
        strip=False,
        error_messages={'required': "Password is required"},
    )
    confirm_password = forms.CharField(
        widget=forms.PasswordInput,
        strip=False,
        error_messages={'required': "Password confirmation is required"},
    )
    terms = forms.BooleanField(
        error_messages={'required': "Please accept the Terms of Service and Privacy Policy"},
    )

    def clean_full_name(self):
        name = self.cleaned_data['full_name'].strip()
        if not name:
            raise ValidationError("Full name is required")
        return name

    def clean_email(self):
        email = self.cleaned_data['email'].strip().lower()
        if CustomUser.objects.filter(email=email).exists():
            raise ValidationError("Email already registered. Please use a different email or login.")
        return email

    def clean_contact(self):
        digits = re.sub(r"[^0-9]", "", self.cleaned_data['contact'])
        if len(digits) != 10:
            raise ValidationError("Please enter a valid 10-digit phone number")
        return digits

    def clean_password(self):
        password = self.cleaned_data['password']
        if not password.strip():
            raise ValidationError("Password is required")
        if len(password) < 6:
            raise ValidationError("Password must be at least 6 characters long")
        return password

    def clean(self):
        cleaned_data = super().clean()
        password = cleaned_data.get('password')
        confirm = cleaned_data.get('confirm_password')
        if password and confirm and password != confirm:
            self.add_error('confirm_password', "Passwords do not match")
        return cleaned_data


class SlotFieldsMixin:
    """Shared HH:MM cleaning and ordering checks for booking forms."""

    def clean_start_time(self):
        return normalize_hhmm(self.cleaned_data['start_time'])

    def clean_end_time(self):
        return normalize_hhmm(self.cleaned_data['end_time'])

    def check_slot(self, cleaned_data, facility):
        day = cleaned_data.get('date')
        start = cleaned_data.get('start_time')
        end = cleaned_data.get('end_time')

        if start and end and start >= end:
            raise ValidationError("End time must be after start time.")
        today = timezone.localdate()
        if day and day < today:
            self.add_error('date', "Cannot book a date in the past.")
        elif day == today and start and start <= timezone.localtime().strftime("%H:%M"):
            self.add_error('start_time', "Start time has already passed.")
        if facility and start and end and not facility.within_hours(start, end):
            raise ValidationError(
                f"{facility.name} is open from {facility.opens_at} to {facility.closes_at}."
            )


class BookingForm(SlotFieldsMixin, forms.Form):
    facility = forms.ModelChoiceField(
        queryset=Facility.objects.none(),
        empty_label="Select Facility",
        error_messages={
            'required': "All fields are required",
            'invalid_choice': "Selected facility not found",
        },
    )
    date = forms.DateField(widget=forms.DateInput(attrs={'type': 'date'}))
    start_time = forms.CharField(max_length=8, widget=forms.TimeInput(attrs={'type': 'time'}))
    end_time = forms.CharField(max_length=8, widget=forms.TimeInput(attrs={'type': 'time'}))
    purpose = forms.CharField(widget=forms.Textarea(attrs={'rows': 3, 'placeholder': 'Event details...'}))

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['facility'].queryset = Facility.objects.active()

    def clean_purpose(self):
        purpose = self.cleaned_data['purpose'].strip()
        if not purpose:
            raise ValidationError("All fields are required")
        return purpose

    def clean(self):
        cleaned_data = super().clean()
        self.check_slot(cleaned_data, cleaned_data.get('facility'))
        return cleaned_data


class RescheduleForm(SlotFieldsMixin, forms.Form):
    """
    Only allows editing date and time; the facility stays fixed.
    """
    date = forms.DateField(widget=forms.DateInput(attrs={'type': 'date'}))
    start_time = forms.CharField(max_length=8, widget=forms.TimeInput(attrs={'type': 'time'}))
    end_time = forms.CharField(max_length=8, widget=forms.TimeInput(attrs={'type': 'time'}))

    def __init__(self, *args, booking=None, **kwargs):
        self.booking = booking
        if booking is not None:
            kwargs.setdefault('initial', {
                'date': booking.date,
                'start_time': booking.start_time,
                'end_time': booking.end_time,
            })
        super().__init__(*args, **kwargs)

    def clean(self):
        cleaned_data = super().clean()
        self.check_slot(cleaned_data, self.booking.facility if self.booking else None)
        return cleaned_data


class ComplaintForm(forms.ModelForm):
    class Meta:
        model = Complaint
        fields = ['subject', 'description', 'category', 'priority']
        widgets = {
            'subject': forms.TextInput(attrs={'placeholder': 'Subject'}),
            'description': forms.Textarea(attrs={'rows': 4, 'placeholder': 'Describe the issue...'}),
        }
        error_messages = {
            'subject': {'required': "Subject and description are required"},
            'description': {'required': "Subject and description are required"},
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['category'].required = False
        self.fields['priority'].required = False

    def clean_category(self):
        return self.cleaned_data.get('category') or "Other"

    def clean_priority(self):
        return self.cleaned_data.get('priority') or "Medium"


class FacilityForm(forms.ModelForm):
    amenities = forms.CharField(
        required=False,
        widget=forms.TextInput(attrs={'placeholder': 'Projector, AC, Whiteboard'}),
        help_text="Comma-separated",
    )

    class Meta:
        model = Facility
        fields = [
            'name', 'facility_type', 'location', 'capacity', 'description',
            'amenities', 'opens_at', 'closes_at', 'status',
        ]
        widgets = {
            'name': forms.TextInput(attrs={'placeholder': 'Name'}),
            'location': forms.TextInput(attrs={'placeholder': 'Location'}),
            'capacity': forms.NumberInput(attrs={'placeholder': 'Capacity', 'min': 1}),
            'description': forms.Textarea(attrs={'rows': 3, 'maxlength': 500}),
            'opens_at': forms.TimeInput(attrs={'type': 'time'}),
            'closes_at': forms.TimeInput(attrs={'type': 'time'}),
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        for name in ('opens_at', 'closes_at', 'status'):
            self.fields[name].required = False
        if self.instance.pk:
            self.initial['amenities'] = self.instance.amenities_display

    def clean_name(self):
        return self.cleaned_data['name'].strip()

    def clean_location(self):
        return self.cleaned_data['location'].strip()

    def clean_amenities(self):
        raw = self.cleaned_data.get('amenities') or ""
        return [item.strip() for item in raw.split(",") if item.strip()]

    def clean_opens_at(self):
        value = self.cleaned_data.get('opens_at')
        return normalize_hhmm(value) if value else self.instance.opens_at or "09:00"

    def clean_closes_at(self):
        value = self.cleaned_data.get('closes_at')
        return normalize_hhmm(value) if value else self.instance.closes_at or "17:00"

    def clean_status(self):
        return self.cleaned_data.get('status') or self.instance.status or Facility.STATUS_ACTIVE

    def clean(self):
        cleaned_data = super().clean()
        opens, closes = cleaned_data.get('opens_at'), cleaned_data.get('closes_at')
        if opens and closes and opens >= closes:
            raise ValidationError("Closing time must be after opening time.")
        return cleaned_data


class BookingDecisionForm(forms.Form):
    status = forms.ChoiceField(choices=Booking.STATUS_CHOICES)
    reason = forms.CharField(required=False, widget=forms.Textarea(attrs={'rows': 2}))


class ComplaintResponseForm(forms.Form):
    status = forms.ChoiceField(choices=[("", "Keep current")] + Complaint.STATUS_CHOICES, required=False)
    admin_response = forms.CharField(required=False, widget=forms.Textarea(attrs={'rows': 3}))

    def clean(self):
        cleaned_data = super().clean()
        if not cleaned_data.get('status') and not (cleaned_data.get('admin_response') or "").strip():
            raise ValidationError("Provide a response or a new status.")
        return cleaned_data
