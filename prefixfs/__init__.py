"""prefixfs: a virtual folder tree, read cache and cursor pager over a flat object store"""
