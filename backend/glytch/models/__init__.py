from glytch.models.account import GitHubAccount
