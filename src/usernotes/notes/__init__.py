"""Object notes: per-object display and behavior metadata.

Layout:
    record.py      # ObjectNote: one note keyed by (tag, name)
    store.py       # ObjectDb: keyed collection + exclusive lock
    document.py    # XML load/save of an ObjectDb
    errors.py      # NotesDbError hierarchy

Persisted as a single XML document (default ~/.usernotes/usernotes.xml):

    <objects>
      <object tag="1" name="explorer.exe" priorityclass="0" iopriorityplusone="0"
              backcolor="4294967295" collapse="0" affinity="0">comment</object>
    </objects>
"""
