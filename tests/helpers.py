from app.db.models import User
from app.services.auth import make_token_for_user


def auth(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token_for_user(user)}"}
