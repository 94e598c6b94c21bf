"""
Access token carrying the role and student snapshot claims.
"""
from rest_framework_simplejwt.tokens import AccessToken

STUDENT_CLAIMS = ('grade', 'class', 'number', 'name', 'surname', 'nickname')


class RoleAccessToken(AccessToken):
    """
    Claims: sub (string user id), role, grade, class, number, name, surname, nickname.
    Issued by the login service; tests mint it with for_user().
    """

    @classmethod
    def for_user(cls, user):
        token = super().for_user(user)
        token['sub'] = str(user.pk)
        token['role'] = user.role
        token['name'] = user.name
        token['surname'] = user.surname
        token['nickname'] = user.nickname
        token['grade'] = user.grade
        token['class'] = user.class_name
        token['number'] = user.number
        return token


def student_claims(token, user):
    """
    Snapshot dict from the verified token, falling back to the user row
    for claims the token does not carry.
    """
    fallback = {
        'grade': user.grade,
        'class': user.class_name,
        'number': user.number,
        'name': user.name,
        'surname': user.surname,
        'nickname': user.nickname,
    }
    claims = {}
    for key in STUDENT_CLAIMS:
        value = token.get(key) if token is not None else None
        claims[key] = value if value is not None else fallback[key]
    return claims
