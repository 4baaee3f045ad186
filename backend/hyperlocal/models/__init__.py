from hyperlocal.models.comment import Comment
from hyperlocal.models.post import Post
from hyperlocal.models.refresh_token import RefreshToken
from hyperlocal.models.report import Report
from hyperlocal.models.user import User
from hyperlocal.models.vote import Vote, VoteKind

__all__ = [
    "Comment",
    "Post",
    "RefreshToken",
    "Report",
    "User",
    "Vote",
    "VoteKind",
]
