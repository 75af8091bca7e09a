"""Document submissions: vendor uploads, consultant review, finalization"""
