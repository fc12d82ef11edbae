from dataclasses import dataclass

from django.contrib.auth.hashers import check_password, make_password

from campus.models import CustomUser


@dataclass(frozen=True)
class Actor:
    """
    The authenticated caller of one request. Built from the session by
    `role_required` and handed to the view as an explicit argument.
    """

    pk: int
    user_id: int
    email: str
    full_name: str
    role: str

    @property
    def is_admin(self):
        return self.role == CustomUser.ADMIN

    def has_role(self, *roles):
        return self.role in roles

    @classmethod
    def from_user(cls, user):
        return cls(
            pk=user.pk,
            user_id=user.user_id,
            email=user.email,
            full_name=user.full_name,
            role=user.role,
        )


def hash_user_password(raw_password):
    """
    Hashes a password using Django's standard make_password.
    """
    return make_password(raw_password)


def verify_password(raw_password, hashed_password):
    """
    Verifies a password using Django's check_password.
    """
    return check_password(raw_password, hashed_password)


def authenticate_user(email, password):
    """
    Authenticates a user by email and password.
    Returns the CustomUser object if successful, None otherwise.
    """
    email = (email or "").strip().lower()
    try:
        user = CustomUser.objects.get(email=email)
    except CustomUser.DoesNotExist:
        return None
    if user.is_active and verify_password(password, user.password):
        return user
    return None


def login_user(request, user):
    """
    Logs in a user by rotating the session key and storing the user id.
    """
    request.session.cycle_key()
    request.session["user_id"] = user.pk
    request.session["role"] = user.role


def logout_user(request):
    """
    Logs out a user by clearing the session.
    """
    request.session.flush()


def get_current_user(request):
    """
    Retrieves the logged-in, still-active CustomUser based on session.
    Returns None if not logged in.
    """
    user_id = request.session.get("user_id")
    if user_id:
        try:
            return CustomUser.objects.get(pk=user_id, is_active=True)
        except CustomUser.DoesNotExist:
            pass
    return None


def get_current_actor(request):
    user = get_current_user(request)
    return Actor.from_user(user) if user else None
