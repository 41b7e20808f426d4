# Import all models here so Alembic and create_all() can detect them
from community.db.session import Base

from community.modules.user_management.models.user import User
from community.modules.auth.models.auth_session import AuthSession
from community.modules.roles.models.user_role import UserRole
from community.modules.posts.models.post import Post
from community.modules.posts.likes.models.like import PostLike
from community.modules.support.models.support_message import SupportMessage
