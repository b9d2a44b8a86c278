from sqlalchemy.orm import Session
from models.users import User, UserRole, APP_ROLES
from schemas.user import UserResponse


def has_role(user: User, role: str) -> bool:
    if user is None:
        return False
    return any(r.role == role for r in user.roles)


def is_admin(user: User) -> bool:
    return has_role(user, "admin")


def grant_role(db: Session, user: User, role: str) -> UserRole:
    if role not in APP_ROLES:
        raise ValueError(f"Unknown role: {role}")
    for existing in user.roles:
        if existing.role == role:
            return existing
    entry = UserRole(user_id=user.id, role=role)
    user.roles.append(entry)
    db.commit()
    db.refresh(user)
    return entry


def revoke_role(db: Session, user: User, role: str) -> bool:
    for existing in list(user.roles):
        if existing.role == role:
            user.roles.remove(existing)
            db.commit()
            db.refresh(user)
            return True
    return False


def user_to_out(user: User) -> UserResponse:
    return UserResponse(id=user.id, email=user.email, username=user.username, roles=sorted(r.role for r in user.roles))
