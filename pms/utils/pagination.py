from flask import request, current_app


def get_pagination():
    """Read page/limit from the query string, clamped to configured bounds."""
    page = request.args.get('page', 1, type=int)
    limit = request.args.get('limit', current_app.config['PAGINATION_DEFAULT_LIMIT'], type=int)
    if page < 1:
        page = 1
    if limit < 1 or limit > current_app.config['PAGINATION_MAX_LIMIT']:
        limit = current_app.config['PAGINATION_DEFAULT_LIMIT']
    return page, limit


def pagination_meta(pages, page, limit):
    return {
        'page': page,
        'limit': limit,
        'total': pages.total,
        'pages': pages.pages,
        'has_next': pages.has_next,
        'has_prev': pages.has_prev,
    }
