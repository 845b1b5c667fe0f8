from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from glytch.database import Base

class GitHubAccount(Base):
    __tablename__ = "github_accounts"

    id = Column(Integer, primary_key=True)
    github_id = Column(String, unique=True, nullable=False, index=True)
    login = Column(String, nullable=False)
    email = Column(String, nullable=True)
    avatar_url = Column(String, nullable=True)
    name = Column(String, nullable=True)
    # user-scoped OAuth token; GitHub API calls for this account use nothing else
    access_token = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
