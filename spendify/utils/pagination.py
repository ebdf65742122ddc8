def paginate_query(query, page, limit):
    page = int(page) if page else 1
    limit = int(limit) if limit else 10
    items = query.offset((page-1)*limit).limit(limit).all()
    total = query.order_by(None).count()
    total_pages = (total + limit - 1) // limit
    return items, {"count": len(items), "total": total, "totalPages": total_pages, "currentPage": page}
