from app.models import Bundle, Purchase


def purchased_levels(user):
    """Every HSK level the user has paid for, directly or through a bundle."""
    if user is None:
        return set()

    levels = set()
    bundle_codes = []
    for purchase in Purchase.query.filter_by(user_id=user.id).all():
        if purchase.product_type == "level":
            if purchase.product_id.isdigit():
                levels.add(int(purchase.product_id))
        else:
            bundle_codes.append(purchase.product_id)

    if bundle_codes:
        for bundle in Bundle.query.filter(Bundle.code.in_(bundle_codes)).all():
            levels.update(bundle.level_numbers)
    return levels


def can_access_lesson(user, lesson, levels=None):
    if lesson.is_free:
        return True
    if user is None:
        return False
    if user.is_admin:
        return True
    if levels is None:
        levels = purchased_levels(user)
    return lesson.level in levels
